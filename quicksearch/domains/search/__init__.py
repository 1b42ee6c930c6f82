"""
Search Domain - Multi-source quick search.

This domain handles:
- Searchable item models and item references
- Pluggable per-source search engines
- Request-scoped engine registry
- Fair round-robin merging of per-source results
"""

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
from .merge import fair_merge
from .models import (
    AnyItem,
    DashboardItem,
    DashboardItemOrigin,
    DashboardItemTarget,
    Entity,
    ItemRef,
    SearchableItem,
)
from .registry import EngineRegistry, SearchContext

__all__ = [
    # Contracts
    "SearchEngine",
    "AccessPolicy",
    # Models
    "ItemRef",
    "SearchableItem",
    "Entity",
    "DashboardItem",
    "DashboardItemOrigin",
    "DashboardItemTarget",
    "AnyItem",
    # Engines
    "ENGINE_DASHBOARD",
    "ENGINE_RECORDS",
    "ENGINE_ACCOUNTS",
    "AllowAllPolicy",
    "DashboardSearchEngine",
    "RecordSearchEngine",
    "AccountSearchEngine",
    "EngineRegistry",
    "SearchContext",
    # Ranking
    "fair_merge",
]
