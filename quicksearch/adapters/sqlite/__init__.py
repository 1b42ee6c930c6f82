"""SQLite adapter."""

from .repository import SQLiteRepository

__all__ = ["SQLiteRepository"]
