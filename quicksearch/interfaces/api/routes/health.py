"""
Health Routes - System health and status endpoints.
"""

from typing import Any

from fastapi import APIRouter

from quicksearch import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "quicksearch"}


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """API info endpoint."""
    return {
        "name": "QuickSearch API",
        "version": __version__,
        "description": "Multi-source quick search for administrative dashboards",
        "docs": "/docs",
    }
