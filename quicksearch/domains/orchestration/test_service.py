"""
Tests for the quick search service and filter shortcuts.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from quicksearch.config.errors import InvalidArgumentError, StorageError
from quicksearch.domains.crawl import CrawlUpdateResult
from quicksearch.domains.recency import LedgerCache
from quicksearch.domains.search import EngineRegistry, Entity, SearchContext

from .service import QuickSearchService
from .shortcuts import generate_shortcuts


def _entity(kind: str, item_id: int) -> Entity:
    return Entity(
        label=f"{kind} {item_id}",
        url=f"/{kind}/{item_id}",
        kind=kind,
        internal_id=item_id,
    )


def _ref(engine: str, item: str) -> str:
    return f'{{"engine":"{engine}","item":{item}}}'


class InMemoryLedgerStore:
    """Ledger store backed by a dict."""

    def __init__(self, data: dict[int, Any] | None = None) -> None:
        self.data = dict(data or {})

    async def load_actor_ledger(self, actor_id: int) -> Any:
        return self.data.get(actor_id)

    async def save_actor_ledger(self, actor_id: int, ledger: dict[str, int]) -> None:
        self.data[actor_id] = dict(ledger)

    async def delete_actor_ledger(self, actor_id: int) -> None:
        self.data.pop(actor_id, None)


@pytest.fixture
def record_engine() -> AsyncMock:
    """Create a mock record engine."""
    mock = AsyncMock()
    mock.search_items.return_value = [_entity("record", i) for i in range(1, 4)]
    mock.get_recent_items.return_value = [_entity("record", 1)]
    return mock


@pytest.fixture
def account_engine() -> AsyncMock:
    """Create a mock account engine."""
    mock = AsyncMock()
    mock.search_items.return_value = [_entity("account", i) for i in range(1, 4)]
    mock.get_recent_items.return_value = [_entity("account", 7)]
    return mock


@pytest.fixture
def contexts() -> list[SearchContext]:
    """Contexts the registry built engines with."""
    return []


@pytest.fixture
def registry(
    record_engine: AsyncMock, account_engine: AsyncMock, contexts: list[SearchContext]
) -> EngineRegistry:
    """Create a registry with two mock engines."""
    registry = EngineRegistry()

    def build_record(ctx: SearchContext) -> AsyncMock:
        contexts.append(ctx)
        return record_engine

    registry.register("record", build_record)
    registry.register("account", lambda ctx: account_engine)
    return registry


@pytest.fixture
def ledger_store() -> InMemoryLedgerStore:
    """Create an empty ledger store."""
    return InMemoryLedgerStore()


@pytest.fixture
def reconciler() -> AsyncMock:
    """Create a mock crawl reconciler."""
    mock = AsyncMock()
    mock.record_dashboard_usage.return_value = 0
    return mock


@pytest.fixture
def scheduler() -> MagicMock:
    """Create a mock maintenance scheduler."""
    return MagicMock()


@pytest.fixture
def service(
    registry: EngineRegistry,
    ledger_store: InMemoryLedgerStore,
    reconciler: AsyncMock,
    scheduler: MagicMock,
) -> QuickSearchService:
    """Create a service over mock collaborators."""
    return QuickSearchService(
        registry=registry,
        ledger_store=ledger_store,
        reconciler=reconciler,
        ledger_cache=LedgerCache(),
        scheduler=scheduler,
        max_results=4,
    )


# --- Search Tests ---


async def test_search_merges_fairly(
    service: QuickSearchService, record_engine: AsyncMock, contexts: list[SearchContext]
) -> None:
    """Test results interleave by source and report more candidates."""
    response = await service.search("  invoice ", ["records"])

    assert [(item.kind, item.internal_id) for item in response.items] == [
        ("record", 1),
        ("record", 2),
        ("account", 1),
        ("account", 2),
    ]
    assert response.has_more is True
    record_engine.search_items.assert_awaited_once_with("invoice", 4)
    assert contexts[0].visible_pages == ("records",)


async def test_search_exact_fit_has_no_more(
    service: QuickSearchService, record_engine: AsyncMock, account_engine: AsyncMock
) -> None:
    """Test has_more is false when every candidate is returned."""
    record_engine.search_items.return_value = [_entity("record", 1)]
    account_engine.search_items.return_value = [_entity("account", 1)]

    response = await service.search("invoice")

    assert len(response.items) == 2
    assert response.has_more is False


async def test_search_blank_query(service: QuickSearchService, record_engine: AsyncMock) -> None:
    """Test blank queries return nothing without running engines."""
    response = await service.search("   ")

    assert response.items == []
    assert response.has_more is False
    record_engine.search_items.assert_not_awaited()


async def test_search_failing_source_degrades(
    service: QuickSearchService, record_engine: AsyncMock
) -> None:
    """Test a failing source contributes no items."""
    record_engine.search_items.side_effect = StorageError("locked")

    response = await service.search("invoice")

    assert [item.kind for item in response.items] == ["account"] * 3
    assert response.has_more is False


async def test_search_empty_source_takes_no_share() -> None:
    """Test a source without results does not shrink the others' first round."""
    registry = EngineRegistry()
    for name, count in (("dashboard", 0), ("record", 10), ("account", 10)):
        engine = AsyncMock()
        engine.search_items.return_value = [_entity(name, i) for i in range(count)]
        registry.register(name, lambda ctx, engine=engine: engine)
    service = QuickSearchService(registry, InMemoryLedgerStore(), AsyncMock(), max_results=6)

    response = await service.search("invoice")

    assert [(item.kind, item.internal_id) for item in response.items] == [
        ("record", 0),
        ("record", 1),
        ("record", 2),
        ("account", 0),
        ("account", 1),
        ("account", 2),
    ]
    assert response.has_more is True


async def test_search_failure_logged_as_unavailable_source(
    service: QuickSearchService, record_engine: AsyncMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Test a failing source is reported with the SOURCE_UNAVAILABLE code."""
    record_engine.search_items.side_effect = StorageError("locked")

    with caplog.at_level(logging.WARNING):
        await service.search("invoice")

    assert "[SOURCE_UNAVAILABLE] Search source record failed" in caplog.text
    assert "StorageError" in caplog.text


async def test_search_rejects_non_string_query(service: QuickSearchService) -> None:
    """Test the query must be a string."""
    with pytest.raises(InvalidArgumentError):
        await service.search(42)  # type: ignore[arg-type]


async def test_search_wire_format(service: QuickSearchService) -> None:
    """Test the response serializes with camelCase keys."""
    response = await service.search("invoice")

    wire = response.to_wire()
    assert wire["hasMore"] is True
    assert wire["items"][0]["internalId"] == 1


# --- Preload Tests ---


async def test_preload_groups_refs_by_engine(
    service: QuickSearchService,
    ledger_store: InMemoryLedgerStore,
    record_engine: AsyncMock,
    account_engine: AsyncMock,
) -> None:
    """Test each engine resolves its own refs, then shortcuts follow."""
    ledger_store.data[5] = {
        _ref("record", '{"id":1}'): 300,
        _ref("account", '{"id":7}'): 200,
        _ref("record", '{"id":2}'): 100,
        _ref("disabled", '{"id":9}'): 400,
    }

    items = await service.preload(5, ["records"])

    record_engine.get_recent_items.assert_awaited_once_with([{"id": 1}, {"id": 2}], 20)
    account_engine.get_recent_items.assert_awaited_once_with([{"id": 7}], 20)
    assert [item.label for item in items[:2]] == ["record 1", "account 7"]
    assert items[2].label == "Published Records"
    assert len(items) == 2 + len(generate_shortcuts(["records"]))


async def test_preload_rejects_bad_actor(service: QuickSearchService) -> None:
    """Test the actor ID is validated."""
    with pytest.raises(InvalidArgumentError):
        await service.preload(0, [])


# --- Usage Tests ---


async def test_record_usage_batch(
    ledger_store: InMemoryLedgerStore, reconciler: AsyncMock, scheduler: MagicMock
) -> None:
    """Test valid entries reach the ledger and dashboard usage is bridged."""
    registry = EngineRegistry()
    for name in ("dashboard", "record"):
        registry.register(name, lambda ctx: AsyncMock())
    service = QuickSearchService(registry, ledger_store, reconciler, scheduler=scheduler)
    now = int(time.time())
    dashboard_ref = _ref("dashboard", '{"url":"settings","id":"s1"}')

    accepted = await service.record_usage_batch(
        3,
        {
            _ref("record", '{"id":4}'): now - 60,
            dashboard_ref: now,
            _ref("account", '{"id":1}'): now,
            _ref("record", '{"id":5}'): now - 40 * 24 * 3600,
            _ref("record", '{"id":6}'): "soon",
            "junk": now,
        },
    )

    assert accepted == 2
    assert ledger_store.data[3] == {dashboard_ref: now, _ref("record", '{"id":4}'): now - 60}
    bridged = reconciler.record_dashboard_usage.await_args.args[0]
    assert [usage.serialized_ref for usage in bridged] == [_ref("record", '{"id":4}'), dashboard_ref]


async def test_record_usage_batch_nothing_valid(
    service: QuickSearchService, ledger_store: InMemoryLedgerStore, reconciler: AsyncMock
) -> None:
    """Test a batch without valid entries writes nothing."""
    accepted = await service.record_usage_batch(3, {"junk": 1})

    assert accepted == 0
    assert ledger_store.data == {}
    reconciler.record_dashboard_usage.assert_not_awaited()


async def test_record_usage_batch_rejects_bad_input(service: QuickSearchService) -> None:
    """Test invalid actors and payload shapes are rejected."""
    with pytest.raises(InvalidArgumentError):
        await service.record_usage_batch(-1, {})
    with pytest.raises(InvalidArgumentError):
        await service.record_usage_batch(1, ["not", "a", "mapping"])  # type: ignore[arg-type]


async def test_usage_updates_preload_cache(
    service: QuickSearchService, record_engine: AsyncMock
) -> None:
    """Test a preload after usage sees the new ref."""
    await service.preload(8, [])
    record_engine.get_recent_items.assert_awaited_with([], 20)

    await service.record_usage_batch(8, {_ref("record", '{"id":42}'): int(time.time())})
    await service.preload(8, [])

    record_engine.get_recent_items.assert_awaited_with([{"id": 42}], 20)


# --- Crawl Tests ---


async def test_update_discovery_index_fails_fast(
    service: QuickSearchService, reconciler: AsyncMock, scheduler: MagicMock
) -> None:
    """Test the first storage error aborts the remaining pages."""
    failure = StorageError("disk full")
    reconciler.report_discovered_items.side_effect = [(2, None), (0, failure), (1, None)]

    with pytest.raises(StorageError):
        await service.update_discovery_index({"a": [], "b": [], "c": []})

    assert reconciler.report_discovered_items.await_count == 2
    scheduler.ensure_scheduled.assert_not_called()


async def test_update_discovery_index_schedules_maintenance(
    service: QuickSearchService, reconciler: AsyncMock, scheduler: MagicMock
) -> None:
    """Test a successful update reports counts and ensures the GC schedule."""
    reconciler.report_discovered_items.side_effect = [(2, None), (0, None)]

    result = await service.update_discovery_index({"settings": [], "records": []})

    assert result == {"settings": 2, "records": 0}
    reconciler.report_discovered_items.assert_any_await("settings", [], merge_and_cleanup=True)
    scheduler.ensure_scheduled.assert_called_once()


async def test_update_discovery_index_requires_mapping(service: QuickSearchService) -> None:
    """Test the payload must map pages to item lists."""
    with pytest.raises(InvalidArgumentError):
        await service.update_discovery_index([["settings", []]])  # type: ignore[arg-type]


async def test_crawl_metadata_delegates(service: QuickSearchService, reconciler: AsyncMock) -> None:
    """Test crawl metadata calls go to the reconciler."""
    reconciler.fetch_crawl_metadata.return_value = {}
    reconciler.update_crawl_metadata.return_value = CrawlUpdateResult(inserted=1)

    assert await service.get_crawl_metadata(["settings"]) == {}
    result = await service.set_crawl_metadata([{"sourcePage": "settings", "lastCrawledAt": 1}])

    assert result.inserted == 1
    reconciler.fetch_crawl_metadata.assert_awaited_once_with(["settings"])


# --- Shortcut Tests ---


def test_shortcuts_for_visible_pages() -> None:
    """Test shortcuts are generated once per known visible page."""
    shortcuts = generate_shortcuts(["records", "unknown", "records"])

    labels = [item.label for item in shortcuts]
    assert labels.count("Published Records") == 1
    published = shortcuts[0]
    assert published.target.type == "filter"
    assert published.target.url == "records?status=publish"
    assert published.relative_id == "f:url=records?status=publish"
    assert published.unique_id == "p:records:f:url=records?status=publish"


def test_shortcuts_none_for_unknown_pages() -> None:
    """Test pages without predefined filters produce nothing."""
    assert generate_shortcuts(["settings"]) == []
