"""
Ledger Cache - Explicit read cache for persisted recency ledgers.

One instance is owned by a long-lived service (or a single request) and is
invalidated per actor after every write.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

__all__ = ["LedgerCache"]


class LedgerCache:
    """
    In-memory cache of loaded ledgers, keyed by actor ID.

    Features:
    - Oldest-first eviction when full
    - Per-actor invalidation
    - Hit tracking for diagnostics
    """

    def __init__(self, max_size: int = 1000) -> None:
        """
        Initialize cache.

        Args:
            max_size: Maximum number of cached actors
        """
        self._entries: dict[int, dict[str, int]] = {}
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    def get(self, actor_id: int) -> dict[str, int] | None:
        """Get the cached ledger for an actor, if loaded."""
        entry = self._entries.get(actor_id)
        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        return entry

    def set(self, actor_id: int, ledger: dict[str, int]) -> None:
        """Cache a loaded ledger."""
        if actor_id not in self._entries and len(self._entries) >= self._max_size:
            self._evict_oldest()

        self._entries[actor_id] = ledger
        logger.debug("Cached ledger for actor %d (%d entries)", actor_id, len(ledger))

    def invalidate(self, actor_id: int) -> bool:
        """Drop an actor's cached ledger. Returns True if one was cached."""
        return self._entries.pop(actor_id, None) is not None

    def clear(self) -> None:
        """Clear all cache entries."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cleared %d cached ledgers", count)

    def _evict_oldest(self) -> None:
        """Evict the oldest 10% of entries to make room."""
        evict_count = max(1, len(self._entries) // 10)
        for actor_id in list(self._entries)[:evict_count]:
            del self._entries[actor_id]

        logger.debug("Evicted %d cached ledgers", evict_count)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._entries

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
        }
