"""
API Dependencies - Dependency injection for FastAPI routes.

Provides singleton instances of database and service objects.
"""

from __future__ import annotations

from functools import lru_cache

from quicksearch.adapters.sqlite import SQLiteRepository
from quicksearch.config import get_settings
from quicksearch.domains.orchestration import QuickSearchService


@lru_cache
def get_sqlite_repository() -> SQLiteRepository:
    """Get SQLite repository singleton."""
    settings = get_settings()
    return SQLiteRepository(settings.db_path)


@lru_cache
def get_search_service() -> QuickSearchService:
    """Get quick search service singleton."""
    return QuickSearchService.from_settings(get_sqlite_repository(), get_settings())


async def init_services() -> None:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    repo = get_sqlite_repository()
    await repo.initialize()

    service = get_search_service()
    if service.scheduler is not None:
        service.scheduler.ensure_scheduled()


async def cleanup_services() -> None:
    """Cleanup services on shutdown."""
    await get_search_service().shutdown()
    await get_sqlite_repository().close()
