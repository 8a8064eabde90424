"""
Health Routes - System health and status endpoints.
"""

from typing import Any

from fastapi import APIRouter

from poprocessor import __version__

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "poprocessor"}


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """API info endpoint."""
    return {
        "name": "PO Processor API",
        "version": __version__,
        "description": "Purchase order, inquiry and quotation extraction",
        "kinds": ["po", "inquiry", "quotation"],
        "docs": "/docs",
    }
