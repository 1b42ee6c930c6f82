"""
CLI Interface - Command-line tools for QuickSearch.

Provides commands for:
- Database setup
- Search queries and recently used items
- Crawl database maintenance
- Running the API server
"""

from .main import app, main

__all__ = ["app", "main"]
