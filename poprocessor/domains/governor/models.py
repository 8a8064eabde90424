"""
Governor Models - Rate state and configuration for the call governor.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from poprocessor.config.settings import Settings

MINUTE_WINDOW = 60.0
DAY_WINDOW = 24 * 60 * 60.0


class GovernorConfig(BaseModel):
    """Ceilings and retry policy for outbound generation calls."""

    min_interval_seconds: float = Field(default=30.0, ge=0.0)
    max_requests_per_minute: int = Field(default=1, ge=1)
    max_requests_per_day: int = Field(default=15, ge=1)
    max_tokens_per_minute: int = Field(default=100_000, ge=1)
    max_sleep_slice_seconds: float = Field(default=60.0, gt=0.0)
    call_timeout_seconds: float = Field(default=120.0, gt=0.0)
    max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=1.0, ge=0.0)
    retry_increment_seconds: float = Field(default=1.0, ge=0.0)
    retry_max_delay_seconds: float = Field(default=5.0, ge=0.0)
    rate_limit_backoff_seconds: float = Field(default=60.0, ge=0.0)

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> GovernorConfig:
        """Build config from application settings."""
        return cls(
            min_interval_seconds=settings.governor_min_interval_seconds,
            max_requests_per_minute=settings.governor_max_requests_per_minute,
            max_requests_per_day=settings.governor_max_requests_per_day,
            max_tokens_per_minute=settings.governor_max_tokens_per_minute,
            max_sleep_slice_seconds=settings.governor_max_sleep_slice_seconds,
            call_timeout_seconds=settings.governor_call_timeout_seconds,
            max_attempts=settings.governor_max_attempts,
            retry_delay_seconds=settings.governor_retry_delay_seconds,
            retry_increment_seconds=settings.governor_retry_increment_seconds,
            retry_max_delay_seconds=settings.governor_retry_max_delay_seconds,
            rate_limit_backoff_seconds=settings.governor_rate_limit_backoff_seconds,
        )


@dataclass
class RateLimiterState:
    """
    Process-wide rate state, owned by a single CallGovernor.

    Timestamps are epoch seconds. Stale entries are pruned before every
    read so counts always match the retained collections.
    """

    minute_calls: deque[float] = field(default_factory=deque)
    day_calls: deque[float] = field(default_factory=deque)
    minute_tokens: deque[tuple[float, int]] = field(default_factory=deque)
    last_call_at: float | None = None
    backoff_until: float | None = None
    quota_exceeded_until: float | None = None

    def prune(self, now: float) -> None:
        """Drop entries that have left their rolling windows."""
        while self.minute_calls and now - self.minute_calls[0] >= MINUTE_WINDOW:
            self.minute_calls.popleft()
        while self.day_calls and now - self.day_calls[0] >= DAY_WINDOW:
            self.day_calls.popleft()
        while self.minute_tokens and now - self.minute_tokens[0][0] >= MINUTE_WINDOW:
            self.minute_tokens.popleft()
        if self.backoff_until is not None and now >= self.backoff_until:
            self.backoff_until = None
        if self.quota_exceeded_until is not None and now >= self.quota_exceeded_until:
            self.quota_exceeded_until = None

    def record_call(self, now: float, tokens: int = 0) -> None:
        """Record an attempted call."""
        self.minute_calls.append(now)
        self.day_calls.append(now)
        if tokens > 0:
            self.minute_tokens.append((now, tokens))
        self.last_call_at = now

    def requests_in_minute(self, now: float) -> int:
        self.prune(now)
        return len(self.minute_calls)

    def requests_in_day(self, now: float) -> int:
        self.prune(now)
        return len(self.day_calls)

    def tokens_in_minute(self, now: float) -> int:
        self.prune(now)
        return sum(tokens for _, tokens in self.minute_tokens)


class RateSnapshot(BaseModel):
    """Read-only view of the governor for status displays."""

    requests_last_minute: int
    requests_today: int
    tokens_last_minute: int
    max_requests_per_minute: int
    max_requests_per_day: int
    backoff_remaining_seconds: float = 0.0
    quota_exceeded_remaining_seconds: float = 0.0
    waiting_callers: int = 0

    model_config = {"frozen": True}
