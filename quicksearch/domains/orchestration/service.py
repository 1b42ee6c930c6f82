"""
Quick Search Service - Composes engines, ledger and crawler into request flows.

Flows:
- search: registry -> engines (concurrent) -> fair merge
- preload: ledger refs -> engines resolve and back-fill -> shortcuts
- usage: validate batch -> ledger flush -> dashboard discovery bridge
- crawl: discovery index, crawl metadata, background staleness GC
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from quicksearch.config.errors import (
    InvalidArgumentError,
    SourceUnavailableError,
    ValidationSkip,
)
from quicksearch.domains.crawl import (
    CrawlerHints,
    CrawlReconciler,
    CrawlRecord,
    CrawlUpdateResult,
    MaintenanceScheduler,
)
from quicksearch.domains.recency import (
    LedgerCache,
    LedgerStore,
    RecencyLedger,
    UsageUpdate,
    UsageValidator,
    check_actor_id,
)
from quicksearch.domains.search import (
    AccessPolicy,
    EngineRegistry,
    SearchContext,
    SearchEngine,
    SearchableItem,
    fair_merge,
)

from .models import SearchResponse
from .shortcuts import generate_shortcuts

if TYPE_CHECKING:
    from quicksearch.adapters.sqlite import SQLiteRepository
    from quicksearch.config import Settings

logger = logging.getLogger(__name__)

__all__ = ["QuickSearchService"]

EngineCall = Callable[[str, SearchEngine], Awaitable[list[SearchableItem]]]


class QuickSearchService:
    """
    Request protocol of the quick search box.

    Example:
        >>> service = QuickSearchService.from_settings(repo, settings)
        >>> response = await service.search("invoice", ["records"])
        >>> response.has_more
        False
    """

    def __init__(
        self,
        registry: EngineRegistry,
        ledger_store: LedgerStore,
        reconciler: CrawlReconciler,
        ledger_cache: LedgerCache | None = None,
        validator: UsageValidator | None = None,
        scheduler: MaintenanceScheduler | None = None,
        hints: CrawlerHints | None = None,
        max_results: int = 100,
        preload_recent_refs: int = 30,
        recent_items_per_engine: int = 20,
        ledger_soft_size_limit: int = 30,
    ) -> None:
        """
        Initialize service.

        Args:
            registry: Engine factories and the enabled-source predicate
            ledger_store: Persistence for recency ledgers
            reconciler: Crawl reconciliation over the crawl store
            ledger_cache: Ledger read cache, shared across requests
            validator: Usage event validator
            scheduler: Background staleness GC, started after discovery
            hints: Re-crawl interval hints for the client scanner
            max_results: Search result budget
            preload_recent_refs: Ledger refs read for a preload
            recent_items_per_engine: Items each engine contributes to a preload
            ledger_soft_size_limit: Soft cap of each actor's ledger
        """
        self._registry = registry
        self._ledger_store = ledger_store
        self._reconciler = reconciler
        self._ledger_cache = ledger_cache or LedgerCache()
        self._validator = validator or UsageValidator()
        self._scheduler = scheduler
        self._hints = hints or CrawlerHints()
        self._max_results = max_results
        self._preload_recent_refs = preload_recent_refs
        self._recent_items_per_engine = recent_items_per_engine
        self._ledger_soft_size_limit = ledger_soft_size_limit

    @classmethod
    def from_settings(cls, repo: SQLiteRepository, settings: Settings) -> QuickSearchService:
        """Wire the built-in engines and the crawler to one repository."""
        reconciler = CrawlReconciler(
            repo,
            max_source_pages=settings.crawl_max_source_pages,
            max_page_length=settings.crawl_max_page_length,
            staleness_days=settings.staleness_threshold_days,
        )
        scheduler = None
        if settings.maintenance_enabled:
            scheduler = MaintenanceScheduler(
                reconciler,
                initial_delay=settings.maintenance_initial_delay_seconds,
                interval=settings.maintenance_interval_seconds,
                item_staleness_days=settings.staleness_threshold_days,
                crawl_staleness_days=settings.staleness_threshold_days,
            )

        return cls(
            registry=EngineRegistry.default(repo, settings),
            ledger_store=repo,
            reconciler=reconciler,
            validator=UsageValidator(
                max_age_days=settings.usage_max_age_days,
                max_skew_seconds=settings.usage_max_skew_seconds,
            ),
            scheduler=scheduler,
            hints=CrawlerHints(
                unknown_component_crawl_interval_in_days=settings.unknown_component_crawl_interval_days,
                known_component_crawl_interval_in_days=settings.known_component_crawl_interval_days,
                min_crawl_interval_in_hours=settings.min_crawl_interval_hours,
            ),
            max_results=settings.search_max_results,
            preload_recent_refs=settings.preload_recent_refs,
            recent_items_per_engine=settings.recent_items_per_engine,
            ledger_soft_size_limit=settings.ledger_soft_size_limit,
        )

    @property
    def scheduler(self) -> MaintenanceScheduler | None:
        return self._scheduler

    @property
    def crawler_hints(self) -> CrawlerHints:
        return self._hints

    async def search(
        self,
        query: str,
        visible_pages: Iterable[str] = (),
        access_policy: AccessPolicy | None = None,
    ) -> SearchResponse:
        """
        Search every enabled source and merge the results fairly.

        ``has_more`` is set when the sources found more candidates than fit
        in the result budget.
        """
        if not isinstance(query, str):
            raise InvalidArgumentError("Query must be a string")

        query = query.strip()
        if not query:
            return SearchResponse()

        engines = self._registry.build(SearchContext.for_pages(visible_pages, access_policy))

        async def run(name: str, engine: SearchEngine) -> list[SearchableItem]:
            return await engine.search_items(query, self._max_results)

        results = await self._run_engines(engines, run)
        candidates = sum(len(result) for result in results)
        # Sources with nothing to contribute take no share of the budget
        items = fair_merge([result for result in results if result], self._max_results)

        logger.info(
            "Search across %d sources returned %d of %d candidates",
            len(engines),
            len(items),
            candidates,
        )
        return SearchResponse(items=items, has_more=candidates > len(items))

    async def preload(
        self,
        actor_id: int,
        visible_pages: Iterable[str] = (),
        access_policy: AccessPolicy | None = None,
    ) -> list[SearchableItem]:
        """
        Items to show before anything is typed.

        Each engine resolves the actor's recent refs for it and back-fills
        with its most recent items; filter shortcuts come last.
        """
        check_actor_id(actor_id)
        visible_pages = list(visible_pages)
        engines = self._registry.build(SearchContext.for_pages(visible_pages, access_policy))

        refs = await self._ledger().get_recent_refs(
            actor_id, list(engines), self._preload_recent_refs
        )
        refs_by_engine: dict[str, list[Any]] = {}
        for ref in refs:
            refs_by_engine.setdefault(ref.engine, []).append(ref.item)

        async def run(name: str, engine: SearchEngine) -> list[SearchableItem]:
            return await engine.get_recent_items(
                refs_by_engine.get(name, []), self._recent_items_per_engine
            )

        results = await self._run_engines(engines, run)
        items = [item for result in results for item in result]
        items.extend(generate_shortcuts(visible_pages))
        return items

    async def record_usage_batch(self, actor_id: int, updates: Mapping[str, Any]) -> int:
        """
        Record the items an actor used.

        Invalid entries are dropped. Accepted dashboard usages also mark the
        item as discovered.

        Returns:
            Number of accepted entries
        """
        check_actor_id(actor_id)
        if not isinstance(updates, Mapping):
            raise InvalidArgumentError("Usage updates must be an object")

        enabled = self._registry.enabled_names()
        ledger = self._ledger()
        now = int(time.time())

        accepted = []
        for serialized_ref, timestamp in updates.items():
            try:
                usage = self._validator.validate(
                    UsageUpdate(serialized_ref=serialized_ref, timestamp=timestamp),
                    enabled,
                    now=now,
                )
            except ValidationSkip as e:
                logger.debug("Skipping usage entry %.80s: %s", serialized_ref, e.reason)
                continue

            ledger.record_usage(actor_id, usage.serialized_ref, usage.timestamp)
            accepted.append(usage)

        if accepted:
            await ledger.flush()
            await self._reconciler.record_dashboard_usage(accepted)

        return len(accepted)

    async def update_discovery_index(self, updates: Mapping[str, Any]) -> dict[str, int]:
        """
        Store crawl results for several pages.

        Stops at the first page whose items could not be stored; pages before
        it stay stored.

        Returns:
            Newly inserted item count per page

        Raises:
            InvalidArgumentError: If the payload is malformed
            StorageError: On the first storage failure
        """
        if not isinstance(updates, Mapping):
            raise InvalidArgumentError("Invalid update list - object expected")

        inserted: dict[str, int] = {}
        for source_page, items in updates.items():
            count, error = await self._reconciler.report_discovered_items(
                source_page, items, merge_and_cleanup=True
            )
            if error is not None:
                raise error
            inserted[source_page] = count

        if self._scheduler is not None:
            self._scheduler.ensure_scheduled()

        return inserted

    async def get_crawl_metadata(self, source_pages: Sequence[Any]) -> dict[str, CrawlRecord]:
        """Crawl records keyed by source page."""
        return await self._reconciler.fetch_crawl_metadata(source_pages)

    async def set_crawl_metadata(self, records: Sequence[Any]) -> CrawlUpdateResult:
        """Store crawl records; may partially succeed."""
        return await self._reconciler.update_crawl_metadata(records)

    async def purge_stale_entries(self, days: int | None = None) -> None:
        """Run the staleness GC immediately."""
        await self._reconciler.purge_stale_entries(days, days)

    async def shutdown(self) -> None:
        """Stop background work."""
        if self._scheduler is not None:
            await self._scheduler.stop()

    def _ledger(self) -> RecencyLedger:
        # Pending writes are scoped to one call; the read cache is shared.
        return RecencyLedger(
            self._ledger_store,
            self._ledger_cache,
            soft_size_limit=self._ledger_soft_size_limit,
        )

    async def _run_engines(
        self,
        engines: Mapping[str, SearchEngine],
        call: EngineCall,
    ) -> list[list[SearchableItem]]:
        """Run one call per engine concurrently; a failing source yields []."""
        names = list(engines)
        results = await asyncio.gather(
            *(call(name, engines[name]) for name in names),
            return_exceptions=True,
        )

        lists: list[list[SearchableItem]] = []
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                error = _as_source_error(name, result)
                logger.warning("%s details=%s", error, error.details)
                lists.append([])
            elif isinstance(result, BaseException):
                raise result
            else:
                lists.append(result)
        return lists


def _as_source_error(name: str, error: Exception) -> SourceUnavailableError:
    if isinstance(error, SourceUnavailableError):
        return error
    return SourceUnavailableError(
        f"Search source {name} failed: {error}",
        {"engine": name, "error_type": type(error).__name__},
    )
