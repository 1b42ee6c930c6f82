"""
Actor Dependencies - Resolve the acting user from request headers.

The admin application in front of this service authenticates users and
forwards the numeric user ID in the ``X-Actor-Id`` header.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from quicksearch.config.errors import ErrorCode, InvalidArgumentError, QuickSearchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorContext:
    """The user a request acts on behalf of."""

    actor_id: int


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
) -> ActorContext:
    """
    Read the actor from the ``X-Actor-Id`` header.

    Raises:
        QuickSearchError: SECURITY_UNAUTHORIZED if the header is missing
        InvalidArgumentError: If the header is not a positive integer
    """
    if not x_actor_id:
        raise QuickSearchError(ErrorCode.SECURITY_UNAUTHORIZED, "Missing X-Actor-Id header")

    try:
        actor_id = int(x_actor_id)
    except ValueError:
        actor_id = 0

    if actor_id <= 0:
        raise InvalidArgumentError(
            "Actor ID must be a positive integer",
            {"actor_id": x_actor_id[:32]},
        )

    return ActorContext(actor_id=actor_id)
