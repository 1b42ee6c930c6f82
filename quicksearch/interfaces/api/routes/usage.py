"""
Usage Routes - Client-reported item usage.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from quicksearch.domains.orchestration import QuickSearchService, UsageBatch
from quicksearch.interfaces.api.auth import ActorContext, get_current_actor
from quicksearch.interfaces.api.deps import get_search_service

router = APIRouter()


@router.post("")
async def record_usage(
    batch: UsageBatch,
    actor: ActorContext = Depends(get_current_actor),
    service: QuickSearchService = Depends(get_search_service),
) -> dict[str, int]:
    """
    Record the items the actor used.

    Body: ``{"_v": 2, "items": {"<serialized ref>": <unix timestamp>}}``.
    Entries with unknown engines or out-of-range timestamps are ignored.
    """
    accepted = await service.record_usage_batch(actor.actor_id, batch.items)
    return {"accepted": accepted, "received": len(batch.items)}
