"""
Crawl Models - Data types for crawl domain.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from quicksearch.domains.search.models import DashboardItemTarget

_WIRE_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class DiscoveredItem(BaseModel):
    """An item the client-side scanner found on a source page."""

    relative_id: str = Field(..., min_length=1, max_length=255)
    label: str = Field(..., min_length=1)
    location: list[str] = Field(default_factory=list)
    target: DashboardItemTarget
    rendered_on_page: str | None = None

    model_config = _WIRE_CONFIG


class CrawlRecord(BaseModel):
    """Persisted crawl metadata for one source page."""

    source_page: str
    last_crawled_at: int
    crawl_interval_days: int | None = None
    updated_at: int | None = None

    model_config = _WIRE_CONFIG


class CrawlRecordUpdate(BaseModel):
    """Client-reported crawl metadata for one source page."""

    source_page: str = Field(..., min_length=1, max_length=2048)
    last_crawled_at: int = Field(..., ge=0)
    crawl_interval_days: int | None = Field(default=None, ge=1)

    model_config = _WIRE_CONFIG


class RecordError(BaseModel):
    """Why one crawl record was rejected."""

    code: str
    message: str
    index: int | None = None
    source_page: str | None = None

    model_config = _WIRE_CONFIG


class CrawlUpdateResult(BaseModel):
    """Outcome of a crawl metadata update; may be a partial success."""

    inserted: int = 0
    updated: int = 0
    errors: list[RecordError] = Field(default_factory=list)

    model_config = _WIRE_CONFIG


class DashboardUsage(BaseModel):
    """A dashboard item the actor used, possibly never crawled."""

    source_page: str
    relative_id: str
    timestamp: int
    label: str | None = None
    target: DashboardItemTarget | None = None

    model_config = {"frozen": True}


class CrawlerHints(BaseModel):
    """Re-crawl interval hints handed to the client-side scanner."""

    unknown_component_crawl_interval_in_days: int = 14
    known_component_crawl_interval_in_days: int = 28
    min_crawl_interval_in_hours: int = 24

    model_config = _WIRE_CONFIG
