"""
Governor Domain - Rate-limited, serialized access to the generation service.

This domain handles:
- FIFO admission of generation calls (one in flight)
- Minute/day/token ceilings and minimum call spacing
- Backoff and daily quota windows
- Bounded retry of transient failures
"""

from .contracts import Clock, SystemClock
from .governor import CallGovernor, estimate_tokens
from .models import GovernorConfig, RateLimiterState, RateSnapshot

__all__ = [
    # Contracts
    "Clock",
    "SystemClock",
    # Models
    "GovernorConfig",
    "RateLimiterState",
    "RateSnapshot",
    # Implementations
    "CallGovernor",
    "estimate_tokens",
]
