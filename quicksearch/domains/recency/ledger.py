"""
Recency Ledger - Bounded, per-actor store of recently used item references.

Updates are buffered in memory and flushed once per request. A flush reloads
the latest persisted ledger and merges by maximum timestamp per key, so
concurrent writers for different actors never clobber each other and a late
flush can never move a timestamp backwards.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from typing import Any

from quicksearch.config.errors import InvalidArgumentError
from quicksearch.domains.search.models import ItemRef

from .cache import LedgerCache
from .contracts import LedgerStore

logger = logging.getLogger(__name__)

__all__ = ["RecencyLedger", "check_actor_id"]


def check_actor_id(actor_id: Any) -> int:
    """Return the actor ID, or raise InvalidArgumentError unless it is a positive int."""
    if isinstance(actor_id, bool) or not isinstance(actor_id, int) or actor_id <= 0:
        raise InvalidArgumentError(
            "Actor ID must be a positive integer",
            {"actor_id": repr(actor_id)},
        )
    return actor_id


def _coerce_ledger(raw: Any) -> dict[str, int]:
    """Treat anything that is not a mapping of str -> int as empty."""
    if not isinstance(raw, Mapping):
        return {}
    return {
        key: value
        for key, value in raw.items()
        if isinstance(key, str) and isinstance(value, int) and not isinstance(value, bool)
    }


def _sort_newest_first(ledger: Mapping[str, int]) -> dict[str, int]:
    # sorted() is stable, so equal timestamps keep their stored order.
    return dict(sorted(ledger.items(), key=lambda entry: entry[1], reverse=True))


class RecencyLedger:
    """
    Per-actor recently used items.

    Example:
        >>> ledger = RecencyLedger(repo, LedgerCache())
        >>> ledger.record_usage(7, '{"engine":"record","item":{"id":12}}', 1700000000)
        >>> await ledger.flush()
        >>> refs = await ledger.get_recent_refs(7, ["record"], 30)
    """

    def __init__(
        self,
        store: LedgerStore,
        cache: LedgerCache | None = None,
        soft_size_limit: int = 30,
    ) -> None:
        """
        Initialize ledger.

        Args:
            store: Ledger persistence
            cache: Read cache for loaded ledgers
            soft_size_limit: Size the ledger is truncated back to; the hard
                limit is twice this
        """
        self._store = store
        self._cache = cache if cache is not None else LedgerCache()
        self._pending: dict[int, dict[str, int]] = {}
        self.soft_size_limit = soft_size_limit
        self.hard_size_limit = soft_size_limit * 2

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    async def get_recent_refs(
        self,
        actor_id: int,
        engine_names: Collection[str],
        max_items: int,
    ) -> list[ItemRef]:
        """
        Get an actor's most recently used refs for the given engines.

        Args:
            actor_id: Actor whose ledger to read
            engine_names: Engines that are currently enabled
            max_items: Maximum number of refs to return

        Returns:
            Parsed refs, newest first
        """
        check_actor_id(actor_id)
        if max_items < 1:
            return []

        ledger = await self._lazy_load(actor_id)

        results: list[ItemRef] = []
        for serialized_ref in ledger:
            ref = ItemRef.parse(serialized_ref)
            if ref is not None and ref.engine in engine_names:
                results.append(ref)
                if len(results) >= max_items:
                    break

        return results

    def record_usage(self, actor_id: int, serialized_ref: str, timestamp: int) -> None:
        """Buffer a usage event; the pending timestamp only ever moves forward."""
        check_actor_id(actor_id)

        updates = self._pending.setdefault(actor_id, {})
        updates[serialized_ref] = max(timestamp, updates.get(serialized_ref, 0))

    async def flush(self) -> int:
        """
        Merge pending updates into persisted ledgers.

        Returns:
            Number of actors whose ledgers were written
        """
        flushed = 0
        for actor_id, updates in list(self._pending.items()):
            # Reload right before writing to keep lost updates to a minimum.
            ledger = _coerce_ledger(await self._store.load_actor_ledger(actor_id))

            for serialized_ref, timestamp in updates.items():
                ledger[serialized_ref] = max(timestamp, ledger.get(serialized_ref, 0))

            ledger = _sort_newest_first(ledger)
            if len(ledger) > self.hard_size_limit:
                ledger = dict(list(ledger.items())[: self.soft_size_limit])

            if ledger:
                await self._store.save_actor_ledger(actor_id, ledger)
            else:
                await self._store.delete_actor_ledger(actor_id)

            self._cache.invalidate(actor_id)
            del self._pending[actor_id]
            flushed += 1

            logger.info(
                "Flushed %d usage updates for actor %d (%d entries stored)",
                len(updates),
                actor_id,
                len(ledger),
            )

        return flushed

    async def _lazy_load(self, actor_id: int) -> dict[str, int]:
        ledger = self._cache.get(actor_id)
        if ledger is None:
            raw = await self._store.load_actor_ledger(actor_id)
            ledger = _sort_newest_first(_coerce_ledger(raw))
            self._cache.set(actor_id, ledger)
        return ledger
