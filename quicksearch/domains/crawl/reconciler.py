"""
Crawl Reconciler - Merges client crawler reports with persisted records.

Flows:
- Discovery: items found on a source page are validated and stored
- Crawl metadata: lookups are bounded, updates may partially succeed
- Staleness GC: old items and crawl records are purged
- Usage bridge: used dashboard items count as discovered
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import ValidationError

from quicksearch.config.errors import CrawlUpdateError, InvalidArgumentError, StorageError
from quicksearch.domains.recency.models import AcceptedUsage
from quicksearch.domains.search.engines import ENGINE_DASHBOARD
from quicksearch.domains.search.models import DashboardItemTarget

from .contracts import CrawlStore
from .models import (
    CrawlRecord,
    CrawlRecordUpdate,
    CrawlUpdateResult,
    DashboardUsage,
    DiscoveredItem,
    RecordError,
)

logger = logging.getLogger(__name__)

__all__ = ["CrawlReconciler"]


class CrawlReconciler:
    """
    Reconciles crawler reports with storage.

    Example:
        >>> reconciler = CrawlReconciler(repo)
        >>> inserted, error = await reconciler.report_discovered_items(
        ...     "settings", [{"relativeId": "s1", "label": "Site title",
        ...                   "target": {"type": "control", "selector": "#title"}}]
        ... )
    """

    def __init__(
        self,
        store: CrawlStore,
        max_source_pages: int = 200,
        max_page_length: int = 2048,
        staleness_days: int = 56,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            store: Crawl persistence
            max_source_pages: Maximum pages per metadata lookup
            max_page_length: Page identifiers are truncated to this length
            staleness_days: Default age after which entries are purged
        """
        self._store = store
        self._max_source_pages = max_source_pages
        self._max_page_length = max_page_length
        self._staleness_days = staleness_days

    async def report_discovered_items(
        self,
        source_page: str,
        items: Sequence[Any],
        merge_and_cleanup: bool = True,
    ) -> tuple[int, StorageError | None]:
        """
        Store the items a scanner found on one page.

        Malformed items are dropped; storage failures are returned to the
        caller rather than raised, so it can decide how to abort.

        Returns:
            (inserted count, storage error or None)
        """
        if not isinstance(source_page, str) or not source_page:
            raise InvalidArgumentError("Source page must be a non-empty string")
        if isinstance(items, (str, bytes, dict)) or not isinstance(items, Sequence):
            raise InvalidArgumentError(
                "Invalid update list for page - array expected",
                {"source_page": source_page},
            )

        valid = list(self._parse_items(source_page, items))

        try:
            inserted = await self._store.insert_discovered_items(
                source_page[: self._max_page_length], valid, merge_and_cleanup
            )
        except StorageError as e:
            logger.error("Failed to store items for %s: %s", source_page, e.message)
            return 0, e

        logger.info(
            "Stored %d items for %s (%d new, %d dropped)",
            len(valid),
            source_page,
            inserted,
            len(items) - len(valid),
        )
        return inserted, None

    async def fetch_crawl_metadata(self, source_pages: Sequence[Any]) -> dict[str, CrawlRecord]:
        """
        Look up crawl records for up to ``max_source_pages`` pages.

        Raises:
            InvalidArgumentError: If the input is not a list or is too long
        """
        if isinstance(source_pages, (str, bytes, dict)) or not isinstance(source_pages, Sequence):
            raise InvalidArgumentError("Invalid source pages - array expected")
        if len(source_pages) > self._max_source_pages:
            raise InvalidArgumentError(
                "Too many source pages for one request",
                {"max": self._max_source_pages, "received": len(source_pages)},
            )

        pages = list(
            dict.fromkeys(
                page[: self._max_page_length]
                for page in source_pages
                if isinstance(page, str) and page
            )
        )
        if not pages:
            return {}

        return await self._store.fetch_crawl_records(pages)

    async def update_crawl_metadata(self, records: Sequence[Any]) -> CrawlUpdateResult:
        """
        Merge client-reported crawl records.

        Returns:
            Counts plus per-record errors (partial success)

        Raises:
            InvalidArgumentError: If the input is not a list
            CrawlUpdateError: If nothing was inserted or updated and there
                were errors
        """
        if isinstance(records, (str, bytes, dict)) or not isinstance(records, Sequence):
            raise InvalidArgumentError("Invalid records - array expected")

        errors: list[RecordError] = []
        valid: list[CrawlRecordUpdate] = []
        for index, raw in enumerate(records):
            try:
                valid.append(CrawlRecordUpdate.model_validate(raw))
            except ValidationError as e:
                errors.append(
                    RecordError(
                        code="invalid_record",
                        message=_first_error(e),
                        index=index,
                        source_page=raw.get("sourcePage") if isinstance(raw, dict) else None,
                    )
                )

        result = CrawlUpdateResult()
        if valid:
            try:
                result = await self._store.update_crawl_records(valid, merge_mode=True)
            except StorageError as e:
                errors.append(RecordError(code=e.code.value, message=e.message))

        errors = errors + list(result.errors)
        if errors and not result.inserted and not result.updated:
            raise CrawlUpdateError(
                "No crawl records were stored",
                {"errors": [error.model_dump(by_alias=True, exclude_none=True) for error in errors]},
            )

        if errors:
            logger.warning(
                "Crawl records partially stored: %d inserted, %d updated, %d errors",
                result.inserted,
                result.updated,
                len(errors),
            )

        return CrawlUpdateResult(inserted=result.inserted, updated=result.updated, errors=errors)

    async def purge_stale_entries(
        self,
        item_staleness_days: int | None = None,
        crawl_staleness_days: int | None = None,
    ) -> None:
        """Delete discovered items and crawl records past their staleness threshold."""
        item_days = self._staleness_days if item_staleness_days is None else item_staleness_days
        crawl_days = self._staleness_days if crawl_staleness_days is None else crawl_staleness_days
        await self._store.delete_stale_entries(item_days, crawl_days)
        logger.info("Purged entries older than %d/%d days", item_days, crawl_days)

    async def next_maintenance_at(self) -> int | None:
        """When the next staleness purge is due, as stored."""
        return await self._store.load_next_maintenance()

    async def schedule_maintenance_at(self, run_at: int) -> None:
        await self._store.save_next_maintenance(run_at)

    async def record_dashboard_usage(self, usages: Iterable[AcceptedUsage]) -> int:
        """
        Mark used dashboard items as discovered.

        Only dashboard refs whose item carries both a page (``url``) and a
        relative ``id`` are bridged.

        Returns:
            Number of usage records forwarded to storage
        """
        updates = []
        for usage in usages:
            item = usage.ref.item
            if usage.ref.engine != ENGINE_DASHBOARD or not isinstance(item, dict):
                continue
            if not item.get("url") or not item.get("id"):
                continue

            updates.append(
                DashboardUsage(
                    source_page=str(item["url"])[: self._max_page_length],
                    relative_id=str(item["id"]),
                    timestamp=usage.timestamp,
                    label=item.get("label") if isinstance(item.get("label"), str) else None,
                    target=_parse_target(item.get("target")),
                )
            )

        if updates:
            await self._store.record_dashboard_usage(updates)
        return len(updates)

    def _parse_items(self, source_page: str, items: Iterable[Any]) -> Iterable[DiscoveredItem]:
        for raw in items:
            try:
                yield DiscoveredItem.model_validate(raw)
            except ValidationError as e:
                logger.debug("Dropping malformed item on %s: %s", source_page, _first_error(e))


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid')}" if location else first.get("msg", "invalid")


def _parse_target(raw: Any) -> DashboardItemTarget | None:
    if not isinstance(raw, dict):
        return None
    try:
        return DashboardItemTarget.model_validate(raw)
    except ValidationError:
        return None
