"""
Orchestration Models - Mapper configuration and document kinds.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from poprocessor.config.settings import Settings
from poprocessor.domains.normalization.models import DocumentKind

__all__ = ["DocumentKind", "MapperConfig", "JSON_MIME_TYPE"]

JSON_MIME_TYPE = "application/json"


class MapperConfig(BaseModel):
    """Thresholds and switches for the document pipeline."""

    min_text_length: int = Field(default=50, ge=0)
    min_readable_length: int = Field(default=200, ge=0)
    reinterpret_min_length: int = Field(default=100, ge=0)
    inline_document: bool = False
    strict: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> MapperConfig:
        """Build config from application settings."""
        return cls(
            min_text_length=settings.min_text_length,
            min_readable_length=settings.min_readable_length,
            reinterpret_min_length=settings.reinterpret_min_length,
            inline_document=settings.inline_document,
            strict=settings.strict_validation,
        )
