"""
Crawl Domain - Dashboard item discovery and crawl bookkeeping.

This domain handles:
- Validation and storage of items found by the client-side scanner
- Per-page crawl metadata with partial-success updates
- Staleness garbage collection on a background schedule
- Bridging dashboard item usage into the discovery index
"""

from .contracts import CrawlStore
from .maintenance import MaintenanceScheduler
from .models import (
    CrawlerHints,
    CrawlRecord,
    CrawlRecordUpdate,
    CrawlUpdateResult,
    DashboardUsage,
    DiscoveredItem,
    RecordError,
)
from .reconciler import CrawlReconciler

__all__ = [
    # Contracts
    "CrawlStore",
    # Models
    "DiscoveredItem",
    "CrawlRecord",
    "CrawlRecordUpdate",
    "CrawlUpdateResult",
    "RecordError",
    "DashboardUsage",
    "CrawlerHints",
    # Implementations
    "CrawlReconciler",
    "MaintenanceScheduler",
]
