"""
Search Routes - Quick search and recently used item preload.
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


class SearchRequest(BaseModel):
    """Search request body."""

    query: str = Field(default="", max_length=500, description="Search query")
    visible_source_pages: list[str] = Field(
        default_factory=list,
        description="Source pages present in the actor's navigation",
    )

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class PreloadRequest(BaseModel):
    """Preload request body."""

    visible_source_pages: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


@router.post("")
async def search(
    request: SearchRequest,
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, Any]:
    """
    Search every enabled source.

    - **query**: Search text; blank returns no items
    - **visibleSourcePages**: Pages whose dashboard items may be returned

    Returns ``{"items": [...], "hasMore": bool}``.
    """
    response = await service.search(request.query, request.visible_source_pages)
    return response.to_wire()


@router.post("/preload")
async def preload(
    request: PreloadRequest,
    actor: ActorContext = Depends(get_current_actor),
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, Any]:
    """Recently used items for the actor, followed by filter shortcuts."""
    items = await service.preload(actor.actor_id, request.visible_source_pages)
    return {"items": [item.to_wire() for item in items]}
