"""
Crawl Routes - Endpoints used by the client-side dashboard scanner.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from quicksearch.domains.orchestration import QuickSearchService
from quicksearch.interfaces.api.auth import ActorContext, get_current_actor
from quicksearch.interfaces.api.deps import get_search_service

router = APIRouter()

_REQUEST_CONFIG = {"populate_by_name": True, "alias_generator": to_camel}


class IndexUpdateRequest(BaseModel):
    """Items found per source page."""

    updates: dict[str, Any]

    model_config = _REQUEST_CONFIG


class CrawlLookupRequest(BaseModel):
    """Pages whose crawl records are requested."""

    source_pages: list[Any] = Field(default_factory=list)

    model_config = _REQUEST_CONFIG


class CrawlRecordsRequest(BaseModel):
    """Crawl records reported by the scanner."""

    records: list[Any] = Field(default_factory=list)

    model_config = _REQUEST_CONFIG


@router.post("/index")
async def update_index(
    request: IndexUpdateRequest,
    actor: ActorContext = Depends(get_current_actor),
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, Any]:
    """
    Store discovered dashboard items.

    The whole call fails on the first page that could not be stored.
    Returns the number of new items per page.
    """
    inserted = await service.update_discovery_index(request.updates)
    return {"inserted": inserted}


@router.post("/records/lookup")
async def lookup_crawl_records(
    request: CrawlLookupRequest,
    actor: ActorContext = Depends(get_current_actor),
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, Any]:
    """Crawl records for up to 200 source pages."""
    records = await service.get_crawl_metadata(request.source_pages)
    return {
        "records": {
            page: record.model_dump(by_alias=True, exclude_none=True)
            for page, record in records.items()
        }
    }


@router.post("/records")
async def set_crawl_records(
    request: CrawlRecordsRequest,
    actor: ActorContext = Depends(get_current_actor),
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, Any]:
    """
    Store crawl records.

    Succeeds if at least one record was inserted or updated; rejected
    records are listed under ``errors``.
    """
    result = await service.set_crawl_metadata(request.records)
    return result.model_dump(by_alias=True, exclude_none=True)


@router.get("/config")
async def crawler_config(
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, Any]:
    """Re-crawl interval hints for the scanner."""
    return service.crawler_hints.model_dump(by_alias=True)
