"""
API Middleware - Request context, error mapping and client throttling.

Provides:
- Request ID and latency headers with one access log line per request
- Error taxonomy to HTTP status mapping
- Sliding-window request limit per client address
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from poprocessor.config.errors import (
    ErrorCode,
    POProcessorError,
    TransientCallError,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

_STATUS_BY_CODE = {
    ErrorCode.BAD_REQUEST: 400,
    # Content was unusable or of the wrong kind
    ErrorCode.EXTRACTION_FAILED: 422,
    ErrorCode.REPAIR_FAILED: 422,
    ErrorCode.VALIDATION_FAILED: 422,
    ErrorCode.DOCUMENT_KIND_MISMATCH: 422,
    # Retry later
    ErrorCode.SECURITY_RATE_LIMITED: 429,
    ErrorCode.LLM_RATE_LIMITED: 429,
    ErrorCode.LLM_QUOTA_EXHAUSTED: 429,
    # Upstream refused the call
    ErrorCode.LLM_AUTH_FAILED: 502,
    ErrorCode.LLM_INVALID_REQUEST: 502,
    # Upstream unreachable
    ErrorCode.LLM_UNAVAILABLE: 503,
    ErrorCode.LLM_TIMEOUT: 504,
}


def error_code_to_status(code: ErrorCode) -> int:
    """Map error codes to HTTP status codes."""
    return _STATUS_BY_CODE.get(code, 500)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    status_code: int,
    error: dict[str, Any],
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """Build the JSON error envelope shared by every failure response."""
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "request_id": _request_id(request), **extra},
        headers=headers,
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request ID, time the request and log one access line."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
        logger.info(
            "%s %s -> %d in %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Convert POProcessorError exceptions to structured JSON responses."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        try:
            return await call_next(request)
        except POProcessorError as e:
            status_code = error_code_to_status(e.code)
            log = logger.warning if status_code < 500 else logger.error
            log("%s on %s: %s [%s]", e.code.value, request.url.path, e.message, _request_id(request))

            headers = {}
            if isinstance(e, TransientCallError) and e.retry_after is not None:
                headers["Retry-After"] = str(int(e.retry_after))

            extra = {}
            if isinstance(e, ValidationFailure) and e.record is not None:
                extra["record"] = e.record.model_dump(mode="json")

            return error_response(request, status_code, e.to_dict(), headers, **extra)
        except Exception:
            logger.exception("Unhandled error on %s [%s]", request.url.path, _request_id(request))
            return error_response(
                request,
                500,
                {"code": ErrorCode.INTERNAL_ERROR.value, "message": "Internal server error", "details": {}},
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client request limit over a sliding 60 second window.

    Health checks are never counted. Rejected requests get a Retry-After
    header computed from the oldest request still in the window.
    """

    window_seconds = 60.0

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 30,
        exempt_paths: frozenset[str] = frozenset({"/health"}),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.exempt_paths = exempt_paths
        self._clock = clock
        self._history: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)
        history = self._history[client]
        self._expire(history, now)

        if len(history) >= self.requests_per_minute:
            retry_after = max(1, int(self.window_seconds - (now - history[0])) + 1)
            logger.warning("Client %s throttled for %ds [%s]", client, retry_after, _request_id(request))
            return error_response(
                request,
                429,
                {
                    "code": ErrorCode.SECURITY_RATE_LIMITED.value,
                    "message": f"Too many requests. Retry in {retry_after} seconds.",
                    "details": {"retry_after": retry_after},
                },
                {"Retry-After": str(retry_after)},
            )

        history.append(now)
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(self.requests_per_minute - len(history))
        return response

    @property
    def tracked_clients(self) -> int:
        """Number of client addresses currently remembered."""
        return len(self._history)

    def _expire(self, history: deque[float], now: float) -> None:
        while history and now - history[0] >= self.window_seconds:
            history.popleft()

    def _sweep(self, now: float) -> None:
        """Forget clients with no requests left in the window."""
        for client in list(self._history):
            history = self._history[client]
            self._expire(history, now)
            if not history:
                del self._history[client]
        self._last_sweep = now
