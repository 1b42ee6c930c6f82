"""
Orchestration Domain - Request flows of the quick search box.

This domain handles:
- Concurrent multi-source search and fair merging
- Recently used item preload with filter shortcuts
- Usage batches and the dashboard discovery bridge
- Crawl index updates and background maintenance
"""

from .models import SearchResponse, UsageBatch
from .service import QuickSearchService
from .shortcuts import PREDEFINED_SHORTCUTS, generate_shortcuts

__all__ = [
    # Models
    "SearchResponse",
    "UsageBatch",
    # Implementations
    "QuickSearchService",
    "PREDEFINED_SHORTCUTS",
    "generate_shortcuts",
]
