"""
API Interface - FastAPI REST API.

Serves the quick search box: search, preload, usage reporting and the
endpoints of the client-side dashboard scanner.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
