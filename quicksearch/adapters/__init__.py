"""
Adapters - Storage integrations.

All database access is wrapped here to isolate domains from driver changes.
"""

from .sqlite import SQLiteRepository

__all__ = [
    "SQLiteRepository",
]
