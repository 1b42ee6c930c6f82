"""
Error Taxonomy - Consistent error codes across the application.

Usage:
    from quicksearch.config.errors import ErrorCode, QuickSearchError

    raise QuickSearchError(ErrorCode.INVALID_ARGUMENT, "Actor ID must be positive")

ValidationSkip is not a user-facing error: batch loops raise it from
per-entry validators and drop the entry.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Request errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Search errors
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"

    # Crawler errors
    CRAWL_UPDATE_FAILED = "CRAWL_UPDATE_FAILED"

    # Storage errors
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"

    # Security errors
    SECURITY_UNAUTHORIZED = "SECURITY_UNAUTHORIZED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"


class QuickSearchError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(QuickSearchError):
    """Bad actor id or malformed payload shape."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.INVALID_ARGUMENT, message, details)


class SourceUnavailableError(QuickSearchError):
    """A single search source failed to answer."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SOURCE_UNAVAILABLE, message, details)


class StorageError(QuickSearchError):
    """Storage/database errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
    ) -> None:
        super().__init__(code, message, details)


class CrawlUpdateError(QuickSearchError):
    """Every crawl record in a batch was rejected."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.CRAWL_UPDATE_FAILED, message, details)


class ValidationSkip(Exception):
    """An individual batch entry failed validation and should be dropped."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
