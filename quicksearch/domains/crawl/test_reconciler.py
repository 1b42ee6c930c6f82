"""
Tests for crawl reconciliation and the maintenance scheduler.
"""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from quicksearch.config.errors import CrawlUpdateError, InvalidArgumentError, StorageError
from quicksearch.domains.recency.models import AcceptedUsage
from quicksearch.domains.search.models import ItemRef

from .maintenance import MaintenanceScheduler
from .models import CrawlRecord, CrawlUpdateResult, RecordError
from .reconciler import CrawlReconciler


def _item(relative_id: str, label: str = "Site title") -> dict:
    return {
        "relativeId": relative_id,
        "label": label,
        "location": ["Settings", "General"],
        "target": {"type": "control", "selector": f"#{relative_id}"},
    }


def _usage(engine: str, item: object, timestamp: int = 1_700_000_000) -> AcceptedUsage:
    ref = ItemRef(engine=engine, item=item)
    return AcceptedUsage(serialized_ref=ref.serialize(), timestamp=timestamp, ref=ref)


@pytest.fixture
def store() -> AsyncMock:
    """Create a mock crawl store."""
    mock = AsyncMock()
    mock.insert_discovered_items.return_value = 0
    mock.fetch_crawl_records.return_value = {}
    mock.update_crawl_records.return_value = CrawlUpdateResult()
    return mock


@pytest.fixture
def reconciler(store: AsyncMock) -> CrawlReconciler:
    """Create a reconciler over the mock store."""
    return CrawlReconciler(store)


# --- Discovery Tests ---


async def test_report_discovered_items_drops_malformed(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test malformed items are dropped before storage."""
    store.insert_discovered_items.return_value = 2

    inserted, error = await reconciler.report_discovered_items(
        "settings",
        [_item("s1"), {"label": "no id"}, _item("s2"), "junk", {**_item("s3"), "label": ""}],
    )

    assert (inserted, error) == (2, None)
    page, items, merge_mode = store.insert_discovered_items.await_args.args
    assert page == "settings"
    assert [item.relative_id for item in items] == ["s1", "s2"]
    assert items[0].location == ["Settings", "General"]
    assert items[0].target.selector == "#s1"
    assert merge_mode is True


async def test_report_discovered_items_returns_storage_error(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test storage failures are returned to the caller."""
    failure = StorageError("disk full")
    store.insert_discovered_items.side_effect = failure

    inserted, error = await reconciler.report_discovered_items("settings", [_item("s1")])

    assert inserted == 0
    assert error is failure


@pytest.mark.parametrize(("page", "items"), [("", []), ("settings", "nope"), ("settings", {"a": 1})])
async def test_report_discovered_items_rejects_bad_shapes(
    reconciler: CrawlReconciler, page: str, items: object
) -> None:
    """Test empty pages and non-list item payloads are invalid."""
    with pytest.raises(InvalidArgumentError):
        await reconciler.report_discovered_items(page, items)  # type: ignore[arg-type]


# --- Crawl Metadata Tests ---


async def test_fetch_crawl_metadata_sanitizes_pages(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test non-strings and empties are dropped, long pages truncated, duplicates merged."""
    long_page = "x" * 3000

    await reconciler.fetch_crawl_metadata(["settings", 5, "", None, long_page, "settings"])

    store.fetch_crawl_records.assert_awaited_once_with(["settings", "x" * 2048])


async def test_fetch_crawl_metadata_too_many_pages(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test more than 200 pages is rejected."""
    with pytest.raises(InvalidArgumentError):
        await reconciler.fetch_crawl_metadata([f"page-{i}" for i in range(201)])
    store.fetch_crawl_records.assert_not_awaited()


async def test_fetch_crawl_metadata_requires_list(reconciler: CrawlReconciler) -> None:
    """Test a string is not accepted as a page list."""
    with pytest.raises(InvalidArgumentError):
        await reconciler.fetch_crawl_metadata("settings")  # type: ignore[arg-type]


async def test_fetch_crawl_metadata_nothing_valid(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test no storage call is made when no page is usable."""
    assert await reconciler.fetch_crawl_metadata([None, ""]) == {}
    store.fetch_crawl_records.assert_not_awaited()


async def test_fetch_crawl_metadata_returns_records(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test records come back keyed by page."""
    record = CrawlRecord(source_page="settings", last_crawled_at=100, updated_at=100)
    store.fetch_crawl_records.return_value = {"settings": record}

    assert await reconciler.fetch_crawl_metadata(["settings"]) == {"settings": record}


async def test_update_crawl_metadata_partial_success(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test invalid records are reported while valid ones are stored."""
    store.update_crawl_records.return_value = CrawlUpdateResult(inserted=1, updated=1)

    result = await reconciler.update_crawl_metadata(
        [
            {"sourcePage": "settings", "lastCrawledAt": 100},
            {"sourcePage": "records", "lastCrawledAt": -1},
            {"sourcePage": "accounts", "lastCrawledAt": 200, "crawlIntervalDays": 14},
        ]
    )

    assert (result.inserted, result.updated) == (1, 1)
    assert len(result.errors) == 1
    assert result.errors[0].code == "invalid_record"
    assert result.errors[0].index == 1
    assert result.errors[0].source_page == "records"
    stored = store.update_crawl_records.await_args.args[0]
    assert [record.source_page for record in stored] == ["settings", "accounts"]


async def test_update_crawl_metadata_total_failure(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test errors with nothing stored fail the whole call."""
    store.update_crawl_records.return_value = CrawlUpdateResult(
        errors=[RecordError(code="db_error", message="locked", source_page="settings")]
    )

    with pytest.raises(CrawlUpdateError) as excinfo:
        await reconciler.update_crawl_metadata([{"sourcePage": "settings", "lastCrawledAt": 1}, "junk"])

    errors = excinfo.value.details["errors"]
    assert [error["code"] for error in errors] == ["invalid_record", "db_error"]


async def test_update_crawl_metadata_storage_exception(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test a storage exception becomes a record error."""
    store.update_crawl_records.side_effect = StorageError("database is locked")

    with pytest.raises(CrawlUpdateError):
        await reconciler.update_crawl_metadata([{"sourcePage": "settings", "lastCrawledAt": 1}])


async def test_update_crawl_metadata_empty_batch(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test an empty batch succeeds without touching storage."""
    result = await reconciler.update_crawl_metadata([])

    assert (result.inserted, result.updated, result.errors) == (0, 0, [])
    store.update_crawl_records.assert_not_awaited()


# --- Staleness Tests ---


async def test_purge_uses_default_threshold(reconciler: CrawlReconciler, store: AsyncMock) -> None:
    """Test purging defaults to 56 days for both tables."""
    await reconciler.purge_stale_entries()
    await reconciler.purge_stale_entries(10, 20)

    assert store.delete_stale_entries.await_args_list[0].args == (56, 56)
    assert store.delete_stale_entries.await_args_list[1].args == (10, 20)


async def test_purge_honors_zero_days(reconciler: CrawlReconciler, store: AsyncMock) -> None:
    """Test an explicit zero threshold is not replaced by the default."""
    await reconciler.purge_stale_entries(0, 0)

    store.delete_stale_entries.assert_awaited_once_with(0, 0)


# --- Usage Bridge Tests ---


async def test_record_dashboard_usage_bridges_dashboard_refs(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test only dashboard refs with url and id are forwarded."""
    count = await reconciler.record_dashboard_usage(
        [
            _usage("dashboard", {"url": "settings", "id": "s1", "label": "Site title"}),
            _usage("dashboard", {"url": "settings"}),
            _usage("record", {"id": 4}),
            _usage("dashboard", {"url": "tools", "id": 7, "target": {"type": "page", "url": "tools"}}),
        ]
    )

    assert count == 2
    updates = store.record_dashboard_usage.await_args.args[0]
    assert [(u.source_page, u.relative_id) for u in updates] == [("settings", "s1"), ("tools", "7")]
    assert updates[0].label == "Site title"
    assert updates[0].target is None
    assert updates[1].target is not None
    assert updates[1].target.type == "page"


async def test_record_dashboard_usage_nothing_to_bridge(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test no storage call is made without dashboard usage."""
    assert await reconciler.record_dashboard_usage([_usage("record", {"id": 4})]) == 0
    store.record_dashboard_usage.assert_not_awaited()


# --- MaintenanceScheduler Tests ---


async def test_scheduler_runs_after_delay() -> None:
    """Test the scheduled task purges and keeps running."""
    reconciler = AsyncMock()
    reconciler.next_maintenance_at.return_value = None
    scheduler = MaintenanceScheduler(reconciler, initial_delay=0, interval=0.01)

    assert scheduler.ensure_scheduled() is True
    assert scheduler.ensure_scheduled() is False

    for _ in range(50):
        if scheduler.runs >= 2:
            break
        await asyncio.sleep(0.01)

    await scheduler.stop()

    assert scheduler.runs >= 2
    assert not scheduler.is_scheduled
    reconciler.purge_stale_entries.assert_awaited_with(56, 56)
    reconciler.schedule_maintenance_at.assert_awaited()


async def test_scheduler_survives_failed_run() -> None:
    """Test a failing purge does not stop the schedule."""
    reconciler = AsyncMock()
    reconciler.next_maintenance_at.return_value = None
    reconciler.purge_stale_entries.side_effect = [StorageError("locked"), None, None]
    scheduler = MaintenanceScheduler(reconciler, initial_delay=0, interval=0.01)

    scheduler.ensure_scheduled()
    for _ in range(50):
        if scheduler.runs >= 1:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert scheduler.runs >= 1


async def test_scheduler_stop_without_start() -> None:
    """Test stopping an idle scheduler is a no-op."""
    scheduler = MaintenanceScheduler(AsyncMock())

    await scheduler.stop()

    assert not scheduler.is_scheduled


async def test_scheduler_waits_for_stored_due_time() -> None:
    """Test a restart keeps the persisted due time instead of the initial delay."""
    reconciler = AsyncMock()
    reconciler.next_maintenance_at.return_value = int(time.time()) + 3600
    scheduler = MaintenanceScheduler(reconciler, initial_delay=0, interval=0.01)

    scheduler.ensure_scheduled()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert scheduler.runs == 0
    reconciler.schedule_maintenance_at.assert_not_awaited()


async def test_scheduler_runs_overdue_job_after_restart() -> None:
    """Test a due time that passed while the process was down runs at once."""
    reconciler = AsyncMock()
    reconciler.next_maintenance_at.return_value = int(time.time()) - 10
    scheduler = MaintenanceScheduler(reconciler, initial_delay=3600, interval=3600)

    scheduler.ensure_scheduled()
    for _ in range(50):
        if scheduler.runs >= 1:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert scheduler.runs == 1
    next_run = reconciler.schedule_maintenance_at.await_args.args[0]
    assert next_run >= int(time.time()) + 3500


async def test_scheduler_persists_first_due_time() -> None:
    """Test a fresh schedule stores its delayed first run."""
    reconciler = AsyncMock()
    reconciler.next_maintenance_at.return_value = None
    scheduler = MaintenanceScheduler(reconciler, initial_delay=3600, interval=3600)

    scheduler.ensure_scheduled()
    await asyncio.sleep(0.02)
    await scheduler.stop()

    assert scheduler.runs == 0
    stored = reconciler.schedule_maintenance_at.await_args.args[0]
    assert stored >= int(time.time()) + 3500


async def test_maintenance_schedule_delegates_to_store(
    reconciler: CrawlReconciler, store: AsyncMock
) -> None:
    """Test the due time is read from and written to storage."""
    store.load_next_maintenance.return_value = 1234

    assert await reconciler.next_maintenance_at() == 1234
    await reconciler.schedule_maintenance_at(5678)

    store.save_next_maintenance.assert_awaited_once_with(5678)
