"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # Gemini
    # Leave the key empty to use Application Default Credentials
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.1
    gemini_max_output_tokens: int = 8192

    # Call governor (free-tier ceilings)
    governor_min_interval_seconds: float = 30.0
    governor_max_requests_per_minute: int = 1
    governor_max_requests_per_day: int = 15
    governor_max_tokens_per_minute: int = 100_000
    governor_max_sleep_slice_seconds: float = 60.0
    governor_call_timeout_seconds: float = 120.0
    governor_max_attempts: int = 3
    governor_retry_delay_seconds: float = 1.0
    governor_retry_increment_seconds: float = 1.0
    governor_retry_max_delay_seconds: float = 5.0
    governor_rate_limit_backoff_seconds: float = 60.0

    # Text extraction
    min_readable_length: int = 200
    min_text_length: int = 50
    reinterpret_min_length: int = 100
    inline_document: bool = False

    # JSON repair
    repair_max_extra_passes: int = 3

    # Normalization
    default_currency: str = "AED"
    two_digit_year_pivot: int = 50
    default_validity_days: int = 30
    expiring_soon_days: int = 7
    placeholder_values: list[str] = Field(
        default_factory=lambda: ["", "n/a", "na", "unknown", "null", "none", "-"]
    )
    # Word-level denylist for numbers and counterparty names.
    # "acme" is absent pending product review.
    placeholder_terms: list[str] = Field(default_factory=lambda: ["sample", "test"])
    strict_validation: bool = False

    # Logging
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_requests_per_minute: int = 30
    api_cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
