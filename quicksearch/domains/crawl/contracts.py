"""
Crawl Contracts - Interfaces for crawl domain.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .models import (
    CrawlRecord,
    CrawlRecordUpdate,
    CrawlUpdateResult,
    DashboardUsage,
    DiscoveredItem,
)


@runtime_checkable
class CrawlStore(Protocol):
    """Persistence for discovered items and crawl metadata."""

    async def fetch_crawl_records(
        self,
        source_pages: Sequence[str],
    ) -> dict[str, CrawlRecord]:
        """Crawl records keyed by source page; unknown pages are absent."""
        ...

    async def insert_discovered_items(
        self,
        source_page: str,
        items: Sequence[DiscoveredItem],
        merge_mode: bool = True,
    ) -> int:
        """
        Store items found on a page.

        Args:
            source_page: Page the items were found on
            items: Items reported by the scanner
            merge_mode: Upsert and drop unreported, unused items instead of
                replacing the page's items wholesale

        Returns:
            Number of newly inserted items

        Raises:
            StorageError: If the write failed
        """
        ...

    async def update_crawl_records(
        self,
        records: Sequence[CrawlRecordUpdate],
        merge_mode: bool = True,
    ) -> CrawlUpdateResult:
        """Insert or update crawl records, collecting per-record errors."""
        ...

    async def delete_stale_entries(self, item_days: int, crawl_days: int) -> None:
        """Delete items and crawl records older than the thresholds."""
        ...

    async def record_dashboard_usage(self, updates: Sequence[DashboardUsage]) -> None:
        """Mark dashboard items as recently used, creating unknown ones."""
        ...

    async def load_next_maintenance(self) -> int | None:
        """Unix time the next staleness purge is due, or None if never scheduled."""
        ...

    async def save_next_maintenance(self, run_at: int) -> None:
        """Persist when the next staleness purge is due."""
        ...
