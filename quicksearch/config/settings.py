"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Paths
    data_dir: Path = Path("data")
    db_path: Path = Path("data/quicksearch.db")

    # Search
    search_max_results: int = 100
    recent_items_per_engine: int = 20
    preload_recent_refs: int = 30
    # Engine name -> enabled. Engines missing from the mapping are enabled.
    search_scope: dict[str, bool] = Field(default_factory=dict)
    # Record content type -> enabled. Missing content types are enabled.
    record_types_enabled: dict[str, bool] = Field(default_factory=dict)
    record_url_template: str = "/admin/records/{id}/edit"
    account_url_template: str = "/admin/accounts/{id}/edit"

    # Recency ledger
    ledger_soft_size_limit: int = 30

    # Usage batch validation
    usage_max_age_days: int = 30
    usage_max_skew_seconds: int = 3600

    # Crawler
    crawl_max_source_pages: int = 200
    crawl_max_page_length: int = 2048
    staleness_threshold_days: int = 56
    unknown_component_crawl_interval_days: int = 14
    known_component_crawl_interval_days: int = 28
    min_crawl_interval_hours: int = 24

    # Maintenance (staleness GC)
    maintenance_enabled: bool = True
    maintenance_initial_delay_seconds: int = 2 * 24 * 3600
    maintenance_interval_seconds: int = 7 * 24 * 3600

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def is_engine_enabled(self, engine: str) -> bool:
        """Engines are enabled unless explicitly switched off."""
        return self.search_scope.get(engine, True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
