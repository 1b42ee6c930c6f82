"""
Search Models - Data types for search domain.

Searchable items are a tagged union on ``type``; the wire format is camelCase
JSON with unset optional fields omitted.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class ItemRef(BaseModel):
    """Serializable pointer to a searchable item."""

    engine: str
    item: Any = None

    model_config = {"frozen": True}

    def serialize(self) -> str:
        """Compact JSON form, used verbatim as a ledger key."""
        return json.dumps(
            {"engine": self.engine, "item": self.item},
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @classmethod
    def parse(cls, serialized: str) -> ItemRef | None:
        """
        Parse a serialized reference.

        Returns None unless the payload is an object with a non-empty string
        ``engine`` and a non-empty ``item``.
        """
        try:
            data = json.loads(serialized)
        except (TypeError, ValueError):
            return None

        if not isinstance(data, dict):
            return None
        engine = data.get("engine")
        item = data.get("item")
        if not engine or not isinstance(engine, str) or not item:
            return None
        return cls(engine=engine, item=item)


class SearchableItem(BaseModel):
    """Common envelope shared by every item variant."""

    label: str
    location: list[str] = Field(default_factory=list)

    model_config = _WIRE_CONFIG

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the client's JSON shape."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Entity(SearchableItem):
    """A structured record or account."""

    type: Literal["entity"] = "entity"
    url: str
    kind: str  # "record", "account"
    internal_id: int
    content_type: str | None = None


class DashboardItemOrigin(BaseModel):
    """Where a dashboard item was found."""

    source_page: str
    rendered_on_page: str | None = None

    model_config = _WIRE_CONFIG


class DashboardItemTarget(BaseModel):
    """How the client navigates to a dashboard item."""

    type: str
    url: str | None = None
    selector: str | None = None

    model_config = _WIRE_CONFIG


class DashboardItem(SearchableItem):
    """An item discovered on an administrative page."""

    type: Literal["dashboardItem"] = "dashboardItem"
    origin: DashboardItemOrigin
    target: DashboardItemTarget
    relative_id: str

    @property
    def source_page(self) -> str:
        return self.origin.source_page

    @computed_field(alias="uniqueId")
    @property
    def unique_id(self) -> str:
        """Identity across pages: relative IDs are only unique per page."""
        return f"p:{self.origin.source_page}:{self.relative_id}"


AnyItem = Annotated[Union[Entity, DashboardItem], Field(discriminator="type")]
