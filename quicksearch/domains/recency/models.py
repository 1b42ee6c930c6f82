"""
Recency Models - Data types for recency domain.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from quicksearch.domains.search.models import ItemRef


class UsageUpdate(BaseModel):
    """One client-reported usage event, before validation."""

    serialized_ref: str
    timestamp: Any

    model_config = {"frozen": True}


class AcceptedUsage(BaseModel):
    """A usage event that passed validation."""

    serialized_ref: str
    timestamp: int
    ref: ItemRef

    model_config = {"frozen": True}
