"""
FastAPI Main Application - HTTP entry point for the extraction pipeline.

Run with: uvicorn poprocessor.interfaces.api.main:app --reload
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from poprocessor import __version__
from poprocessor.config import Settings, get_settings

from .middleware import ErrorHandlerMiddleware, RateLimitMiddleware, RequestContextMiddleware
from .routes import extraction, health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log the generation limits the process will run under."""
    settings = get_settings()
    logger.info(
        "PO Processor API %s using %s (%d/min, %d/day, %d tokens/min)",
        __version__,
        settings.gemini_model,
        settings.governor_max_requests_per_minute,
        settings.governor_max_requests_per_day,
        settings.governor_max_tokens_per_minute,
    )
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; falling back to default credentials")

    yield

    logger.info("PO Processor API stopped")


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    """Install middleware; the last one added runs first."""
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.api_requests_per_minute)
    app.add_middleware(RequestContextMiddleware)

    origins = list(settings.api_cors_origins)
    if settings.api_debug:
        origins.append("http://localhost:8000")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )


def create_app() -> FastAPI:
    """Create FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PO Processor API",
        description="Structured records from purchase orders, inquiries and quotations",
        version=__version__,
        lifespan=lifespan,
        debug=settings.api_debug,
    )
    _install_middleware(app, settings)

    app.include_router(health.router, tags=["Health"])
    app.include_router(extraction.router, prefix="/api/extraction", tags=["Extraction"])

    return app


app = create_app()
