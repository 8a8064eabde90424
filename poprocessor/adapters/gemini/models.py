"""
Gemini Models - Configuration and response types for the Gemini API.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from poprocessor.config.settings import Settings


class GeminiConfig(BaseModel):
    """Configuration for Gemini client."""

    model: str = Field(default="gemini-2.0-flash")
    # Empty key: Application Default Credentials
    api_key: str = Field(default="", repr=False)
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=8192, ge=1)
    timeout_seconds: float = Field(default=120.0, gt=0.0)

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiConfig:
        """Build config from application settings."""
        return cls(
            model=settings.gemini_model,
            api_key=settings.gemini_api_key,
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
            timeout_seconds=settings.governor_call_timeout_seconds,
        )


class GeminiResponse(BaseModel):
    """Generic Gemini API response."""

    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    finish_reason: str = "STOP"


@runtime_checkable
class InlineDocument(Protocol):
    """Bytes attached to a request as an inline part (``SourceDocument`` fits)."""

    data: bytes
    mime_type: str
