"""
Search Contracts - Interfaces for search domain.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from .models import Entity, SearchableItem


@runtime_checkable
class SearchEngine(Protocol):
    """Contract for one pluggable source of searchable items."""

    async def get_recent_items(
        self,
        refs: Sequence[Any],
        desired_results: int = 20,
    ) -> list[SearchableItem]:
        """
        Resolve previously used items, then back-fill with recent ones.

        Args:
            refs: Item payloads of this engine's refs, most recent first
            desired_results: Maximum number of items to return

        Returns:
            Deduplicated items, resolved refs first
        """
        ...

    async def search_items(
        self,
        query: str,
        max_results: int = 100,
    ) -> list[SearchableItem]:
        """Search items; a blank query returns an empty list."""
        ...


@runtime_checkable
class AccessPolicy(Protocol):
    """Per-item visibility check for the current actor."""

    def can_access(self, item: Entity) -> bool:
        """Return True if the actor may see the item."""
        ...


@runtime_checkable
class DashboardItemSource(Protocol):
    """Storage reads used by the dashboard engine."""

    async def search_dashboard_items(
        self,
        query: str,
        source_pages: Sequence[str],
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Items on the given pages, most recently used/found first."""
        ...

    async def get_dashboard_items(
        self,
        keys: Sequence[tuple[str, str]],
    ) -> list[dict[str, Any]]:
        """Items by (source_page, relative_id)."""
        ...


@runtime_checkable
class RecordSource(Protocol):
    """Storage reads used by the record engine."""

    async def search_records(
        self,
        query: str,
        limit: int = 20,
        excluded_types: Sequence[str] = (),
        ids: Sequence[int] | None = None,
    ) -> list[dict[str, Any]]:
        """Records by title substring, most recently modified first."""
        ...


@runtime_checkable
class AccountSource(Protocol):
    """Storage reads used by the account engine."""

    async def search_accounts(
        self,
        query: str,
        limit: int = 20,
        ids: Sequence[int] | None = None,
    ) -> list[dict[str, Any]]:
        """Accounts by display name or login, most recently updated first."""
        ...
