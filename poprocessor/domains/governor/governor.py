"""
Call Governor - Serialized, rate-limited execution of generation calls.

Every call to the external generation service goes through one governor so
the shared quota is never exceeded. Callers are admitted one at a time in
FIFO order, each attempt waits until all ceilings allow it, and transient
failures are retried with a linearly increasing delay.

Usage:
    governor = CallGovernor(GovernorConfig.from_settings(get_settings()))
    response = await governor.execute(
        lambda: client.generate(prompt), estimated_tokens=estimate_tokens(prompt)
    )
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from poprocessor.config.errors import ErrorCode, TransientCallError

from .contracts import Clock, SystemClock
from .models import (
    DAY_WINDOW,
    MINUTE_WINDOW,
    GovernorConfig,
    RateLimiterState,
    RateSnapshot,
)

logger = logging.getLogger(__name__)

__all__ = ["CallGovernor", "estimate_tokens"]

T = TypeVar("T")

# Smallest sleep taken while waiting, so fractional waits always make progress
_MIN_SLEEP_SECONDS = 0.01


def estimate_tokens(text: str) -> int:
    """Rough token estimate (about four characters per token)."""
    return len(text) // 4


def _next_daily_boundary(now: float) -> float:
    """Epoch seconds of the next local midnight after ``now``."""
    current = datetime.fromtimestamp(now)
    midnight = datetime.combine(current.date() + timedelta(days=1), datetime.min.time())
    return midnight.timestamp()


class CallGovernor:
    """
    Gatekeeper for calls to the external generation service.

    Example:
        >>> governor = CallGovernor(GovernorConfig(min_interval_seconds=5))
        >>> result = await governor.execute(lambda: client.generate("hi"))
    """

    def __init__(
        self,
        config: GovernorConfig | None = None,
        state: RateLimiterState | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the governor.

        Args:
            config: Ceilings and retry policy. Uses defaults if None.
            state: Rate state to own. A fresh one is created if None.
            clock: Time source. Uses the system clock if None.
        """
        self.config = config or GovernorConfig()
        self.state = state or RateLimiterState()
        self._clock = clock or SystemClock()

        # FIFO admission: the head of the queue holds the single ticket
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._busy = False

    # --- Public API ---

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        estimated_tokens: int = 0,
    ) -> T:
        """
        Run ``operation`` under the governor's ceilings and retry policy.

        Args:
            operation: Zero-argument factory returning a fresh awaitable per attempt
            estimated_tokens: Token estimate charged against the per-minute budget

        Returns:
            The operation's result

        Raises:
            TransientCallError: Retries exhausted (the last transient error)
            NonTransientCallError: Raised by the operation, never retried
        """
        await self._acquire()
        try:
            return await self._run_with_retry(operation, estimated_tokens)
        finally:
            self._release()

    def mark_quota_exceeded(self, until: float | None = None) -> None:
        """Set the standing quota flag, by default until the next local midnight."""
        now = self._clock.now()
        self.state.quota_exceeded_until = (
            until if until is not None else _next_daily_boundary(now)
        )
        logger.warning(
            "Quota exhausted; calls blocked for %.0fs",
            self.state.quota_exceeded_until - now,
        )

    def apply_backoff(self, seconds: float) -> None:
        """Block calls for ``seconds``, extending any active backoff."""
        until = self._clock.now() + seconds
        if self.state.backoff_until is None or until > self.state.backoff_until:
            self.state.backoff_until = until
        logger.info("Backoff applied for %.1fs", seconds)

    def snapshot(self) -> RateSnapshot:
        """Current counts and remaining blocking windows."""
        now = self._clock.now()
        self.state.prune(now)
        backoff = self.state.backoff_until
        quota = self.state.quota_exceeded_until
        return RateSnapshot(
            requests_last_minute=self.state.requests_in_minute(now),
            requests_today=self.state.requests_in_day(now),
            tokens_last_minute=self.state.tokens_in_minute(now),
            max_requests_per_minute=self.config.max_requests_per_minute,
            max_requests_per_day=self.config.max_requests_per_day,
            backoff_remaining_seconds=max(0.0, backoff - now) if backoff else 0.0,
            quota_exceeded_remaining_seconds=max(0.0, quota - now) if quota else 0.0,
            waiting_callers=len(self._waiters),
        )

    # --- Admission ---

    async def _acquire(self) -> None:
        if not self._busy and not self._waiters:
            self._busy = True
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Ticket was handed over just before cancellation; pass it on
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._busy = False

    # --- Execution ---

    async def _run_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        estimated_tokens: int,
    ) -> T:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientCallError),
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_incrementing(
                start=self.config.retry_delay_seconds,
                increment=self.config.retry_increment_seconds,
                max=self.config.retry_max_delay_seconds,
            ),
            sleep=self._clock.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await self._attempt(operation, estimated_tokens)
        return result

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        estimated_tokens: int,
    ) -> T:
        await self._wait_until_eligible(estimated_tokens)
        self.state.record_call(self._clock.now(), estimated_tokens)

        try:
            return await asyncio.wait_for(
                operation(), timeout=self.config.call_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise TransientCallError(
                f"Generation call timed out after {self.config.call_timeout_seconds:.0f}s",
                ErrorCode.LLM_TIMEOUT,
            ) from e
        except TransientCallError as e:
            if e.code == ErrorCode.LLM_RATE_LIMITED:
                self.apply_backoff(e.retry_after or self.config.rate_limit_backoff_seconds)
            raise

    async def _wait_until_eligible(self, estimated_tokens: int) -> None:
        while True:
            now = self._clock.now()
            waits = self._blocking_waits(now, estimated_tokens)
            if not waits:
                return

            reason, wait = min(waits.items(), key=lambda item: item[1])
            delay = min(max(wait, _MIN_SLEEP_SECONDS), self.config.max_sleep_slice_seconds)
            logger.info("Governor waiting %.1fs (%s)", delay, reason)
            await self._clock.sleep(delay)

    def _blocking_waits(self, now: float, estimated_tokens: int) -> dict[str, float]:
        """Seconds until each violated condition clears, keyed by reason."""
        state = self.state
        config = self.config
        state.prune(now)
        waits: dict[str, float] = {}

        if state.quota_exceeded_until is not None:
            waits["quota exceeded"] = state.quota_exceeded_until - now

        if state.backoff_until is not None:
            waits["backoff"] = state.backoff_until - now

        if state.requests_in_day(now) >= config.max_requests_per_day:
            waits["daily limit"] = state.day_calls[0] + DAY_WINDOW - now

        if state.requests_in_minute(now) >= config.max_requests_per_minute:
            waits["per-minute limit"] = state.minute_calls[0] + MINUTE_WINDOW - now

        if (
            state.minute_tokens
            and state.tokens_in_minute(now) + estimated_tokens > config.max_tokens_per_minute
        ):
            waits["token limit"] = state.minute_tokens[0][0] + MINUTE_WINDOW - now

        if state.last_call_at is not None:
            since_last = now - state.last_call_at
            if since_last < config.min_interval_seconds:
                waits["min interval"] = config.min_interval_seconds - since_last

        return waits

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Transient failure on attempt %d/%d: %s",
            retry_state.attempt_number,
            self.config.max_attempts,
            exc,
        )
