"""
Configuration - Application settings and error taxonomy.
"""

from .errors import (
    CrawlUpdateError,
    ErrorCode,
    InvalidArgumentError,
    QuickSearchError,
    SourceUnavailableError,
    StorageError,
    ValidationSkip,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "QuickSearchError",
    "InvalidArgumentError",
    "SourceUnavailableError",
    "StorageError",
    "CrawlUpdateError",
    "ValidationSkip",
]
