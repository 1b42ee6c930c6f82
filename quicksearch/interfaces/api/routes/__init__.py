"""
API Routes.
"""

from . import crawl, health, search, usage

__all__ = ["health", "search", "usage", "crawl"]
