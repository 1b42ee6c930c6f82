"""
Engine Registry - Builds the active search engines for one request.

Request context (visible pages, access policy) is injected here and only
here; the engines themselves keep no state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .contracts import AccessPolicy, SearchEngine
from .engines import (
    ENGINE_ACCOUNTS,
    ENGINE_DASHBOARD,
    ENGINE_RECORDS,
    AccountSearchEngine,
    AllowAllPolicy,
    DashboardSearchEngine,
    RecordSearchEngine,
)

if TYPE_CHECKING:
    from quicksearch.adapters.sqlite import SQLiteRepository
    from quicksearch.config import Settings

logger = logging.getLogger(__name__)

__all__ = ["EngineFactory", "EngineRegistry", "SearchContext"]


@dataclass(frozen=True)
class SearchContext:
    """Request-scoped inputs for engine construction."""

    visible_pages: tuple[str, ...] = ()
    access_policy: AccessPolicy = field(default_factory=AllowAllPolicy)

    @classmethod
    def for_pages(
        cls,
        pages: Iterable[str],
        access_policy: AccessPolicy | None = None,
    ) -> SearchContext:
        return cls(
            visible_pages=tuple(page for page in pages if isinstance(page, str)),
            access_policy=access_policy or AllowAllPolicy(),
        )


EngineFactory = Callable[[SearchContext], SearchEngine]


class EngineRegistry:
    """
    Registry of engine factories, in registration order.

    Example:
        >>> registry = EngineRegistry.default(repo, settings)
        >>> engines = registry.build(SearchContext.for_pages(["records"]))
        >>> list(engines)
        ['dashboard', 'record', 'account']
    """

    def __init__(self, enabled: Callable[[str], bool] | None = None) -> None:
        """
        Initialize registry.

        Args:
            enabled: Predicate deciding whether a named engine is enabled
        """
        self._factories: dict[str, EngineFactory] = {}
        self._enabled = enabled or (lambda name: True)

    @classmethod
    def default(cls, repo: SQLiteRepository, settings: Settings) -> EngineRegistry:
        """Registry with the built-in dashboard, record and account engines."""
        registry = cls(enabled=settings.is_engine_enabled)
        excluded_types = [
            content_type
            for content_type, on in settings.record_types_enabled.items()
            if not on
        ]

        registry.register(
            ENGINE_DASHBOARD,
            lambda ctx: DashboardSearchEngine(repo, ctx.visible_pages),
        )
        registry.register(
            ENGINE_RECORDS,
            lambda ctx: RecordSearchEngine(
                repo,
                settings.record_url_template,
                excluded_types=excluded_types,
                access_policy=ctx.access_policy,
            ),
        )
        registry.register(
            ENGINE_ACCOUNTS,
            lambda ctx: AccountSearchEngine(
                repo,
                settings.account_url_template,
                access_policy=ctx.access_policy,
            ),
        )
        return registry

    def register(self, name: str, factory: EngineFactory) -> None:
        """Register (or replace) the factory for an engine name."""
        self._factories[name] = factory

    @property
    def names(self) -> list[str]:
        """All registered engine names, in registration order."""
        return list(self._factories)

    def enabled_names(self) -> list[str]:
        """Registered engine names that are currently enabled."""
        return [name for name in self._factories if self._enabled(name)]

    def build(self, context: SearchContext | None = None) -> dict[str, SearchEngine]:
        """
        Construct one engine per enabled source.

        Disabled or unknown sources are absent from the result.
        """
        context = context or SearchContext()
        engines = {name: self._factories[name](context) for name in self.enabled_names()}
        logger.debug(
            "Built %d engines (%s) for %d visible pages",
            len(engines),
            ", ".join(engines),
            len(context.visible_pages),
        )
        return engines
