"""
API Interface - FastAPI REST API.

Exposes document extraction, JSON repair and governor status over HTTP.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
