"""
Recency Contracts - Interfaces for recency domain.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LedgerStore(Protocol):
    """Persistence for per-actor recency ledgers."""

    async def load_actor_ledger(self, actor_id: int) -> Any:
        """
        Load the persisted ledger for an actor.

        Returns:
            The decoded payload (normally a mapping of serialized ref to
            timestamp), or None if nothing is stored
        """
        ...

    async def save_actor_ledger(self, actor_id: int, ledger: Mapping[str, int]) -> None:
        """Persist the ledger, preserving key order."""
        ...

    async def delete_actor_ledger(self, actor_id: int) -> None:
        """Delete the persisted ledger."""
        ...
