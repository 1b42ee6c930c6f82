"""
Orchestration Models - Data types for orchestration domain.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from quicksearch.domains.search.models import AnyItem

_WIRE_CONFIG = {
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class SearchResponse(BaseModel):
    """Merged search results."""

    items: list[AnyItem] = Field(default_factory=list)
    has_more: bool = False

    model_config = _WIRE_CONFIG

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class UsageBatch(BaseModel):
    """
    Usage events reported by the client since the last request.

    ``items`` maps serialized item refs to unix timestamps. Only format
    version 2 is understood.
    """

    version: Literal[2] = Field(..., alias="_v")
    items: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}
