"""
Gemini Client - The single place that calls the Gemini API.

Authentication:
- Uses ``gemini_api_key`` when set
- Otherwise Application Default Credentials
  (``gcloud auth application-default login``)

Features:
- Async generation over the blocking SDK via ``asyncio.to_thread``
- JSON response mode and inline document parts
- Failures classified into the pipeline's call-error taxonomy

Pacing and retries are not done here; every call goes through the
CallGovernor.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from poprocessor.config.errors import (
    CallError,
    ErrorCode,
    NonTransientCallError,
    QuotaExhaustedError,
    TransientCallError,
)

from .models import GeminiConfig, GeminiResponse, InlineDocument

logger = logging.getLogger(__name__)

__all__ = ["GeminiClient", "classify_error", "detect_rate_limit_type"]

_RETRY_AFTER_RE = re.compile(r"retry\D{0,25}?(\d+(?:\.\d+)?)", re.IGNORECASE)
_RATE_LIMIT_RE = re.compile(r"\b429\b|\brate[\s_-]?limit|\btoo many\b|\bquota\b")
_SERVER_STATUS_RE = re.compile(r"\b50[0234]\b")
_AUTH_STATUS_RE = re.compile(r"\b40[13]\b")

_RATE_LIMIT_TYPES = (
    ("RPD", ("per day", "perday", "daily", "requests_per_day")),
    ("TPM", ("token", "tpm")),
    ("RPM", ("per minute", "perminute", "requests_per_minute", "rpm")),
)


def detect_rate_limit_type(message: str) -> str:
    """
    Which limit a rate-limit message refers to.

    Returns:
        "RPD", "TPM", "RPM" or "unknown"
    """
    lowered = message.lower()
    for limit, markers in _RATE_LIMIT_TYPES:
        if any(marker in lowered for marker in markers):
            return limit
    return "unknown"


def _retry_after(message: str) -> float | None:
    match = _RETRY_AFTER_RE.search(message)
    return float(match.group(1)) if match else None


def _mentions(text: str, *markers: str) -> bool:
    return any(marker in text for marker in markers)


def classify_error(exc: BaseException) -> CallError:
    """
    Map an SDK or transport failure onto the call-error taxonomy.

    Args:
        exc: Exception raised by the SDK

    Returns:
        TransientCallError (rate limit, timeout, network, 5xx),
        QuotaExhaustedError (daily quota) or NonTransientCallError
    """
    if isinstance(exc, CallError):
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    details: dict[str, Any] = {"error_type": exc.__class__.__name__}

    rate_limited = isinstance(
        exc, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)
    ) or bool(_RATE_LIMIT_RE.search(lowered))
    if rate_limited:
        limit = detect_rate_limit_type(message)
        details["limit"] = limit
        if limit == "RPD":
            return QuotaExhaustedError(f"Daily quota exhausted: {message}", details)
        return TransientCallError(
            f"Rate limited: {message}",
            ErrorCode.LLM_RATE_LIMITED,
            details,
            retry_after=_retry_after(message),
        )

    if isinstance(exc, (google_exceptions.DeadlineExceeded, TimeoutError)) or _mentions(
        lowered, "timeout", "timed out", "deadline"
    ):
        return TransientCallError(f"Generation call timed out: {message}", ErrorCode.LLM_TIMEOUT, details)

    if (
        isinstance(exc, (google_exceptions.ServerError, ConnectionError))
        or _mentions(lowered, "network", "connection", "unavailable")
        or _SERVER_STATUS_RE.search(lowered)
    ):
        return TransientCallError(f"Generation service unavailable: {message}", details=details)

    if (
        isinstance(exc, (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied))
        or _mentions(lowered, "api key", "api_key", "permission", "unauthenticated")
        or _AUTH_STATUS_RE.search(lowered)
    ):
        return NonTransientCallError(
            f"Generation service rejected credentials: {message}",
            ErrorCode.LLM_AUTH_FAILED,
            details,
        )

    return NonTransientCallError(f"Generation request failed: {message}", details=details)


class GeminiClient:
    """
    Gemini API client implementing the pipeline's GenerationClient contract.

    Example:
        >>> client = GeminiClient(GeminiConfig.from_settings(get_settings()))
        >>> response = await client.generate("Extract...", response_mime_type="application/json")
        >>> print(response.text)
    """

    def __init__(self, config: GeminiConfig | None = None) -> None:
        """
        Initialize Gemini client.

        Args:
            config: Client configuration. Uses defaults if None.
        """
        self.config = config or GeminiConfig()

        if self.config.api_key:
            genai.configure(api_key=self.config.api_key)

        # Model instance (lazy loaded)
        self._model: genai.GenerativeModel | None = None

        logger.info(
            "GeminiClient initialized (%s): model=%s",
            "api key" if self.config.api_key else "ADC",
            self.config.model,
        )

    @property
    def model(self) -> str:
        return self.config.model

    def _get_model(self) -> genai.GenerativeModel:
        """Get or create model instance."""
        if self._model is None:
            self._model = genai.GenerativeModel(
                model_name=self.config.model,
                generation_config={
                    "temperature": self.config.temperature,
                    "max_output_tokens": self.config.max_output_tokens,
                },
            )
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        response_mime_type: str = "text/plain",
        document: InlineDocument | None = None,
    ) -> GeminiResponse:
        """
        Generate text from prompt.

        Args:
            prompt: User prompt
            system_instruction: Optional system instruction
            response_mime_type: Response format ("text/plain" or "application/json")
            document: Optional document attached as an inline part

        Returns:
            GeminiResponse with generated text

        Raises:
            TransientCallError: Rate limit, timeout or service unavailable
            QuotaExhaustedError: Daily quota spent
            NonTransientCallError: Authorization or malformed request
        """
        contents: list[dict[str, Any]] = []
        if system_instruction:
            contents.append({"role": "user", "parts": [system_instruction]})
            contents.append({"role": "model", "parts": ["Understood."]})

        parts: list[Any] = [prompt]
        if document is not None:
            parts.append({"mime_type": document.mime_type, "data": document.data})
        contents.append({"role": "user", "parts": parts})

        try:
            model = self._get_model()
            response = await asyncio.to_thread(
                model.generate_content,
                contents,
                generation_config={"response_mime_type": response_mime_type},
                request_options={"timeout": self.config.timeout_seconds},
            )
            text = response.text
        except Exception as e:
            error = classify_error(e)
            logger.warning("Gemini call failed (%s): %s", error.code.value, e)
            raise error from e

        usage = getattr(response, "usage_metadata", None)
        prompt_tokens = getattr(usage, "prompt_token_count", 0) if usage else 0
        completion_tokens = getattr(usage, "candidates_token_count", 0) if usage else 0

        return GeminiResponse(
            text=text,
            model=self.config.model,
            prompt_tokens=prompt_tokens or 0,
            completion_tokens=completion_tokens or 0,
            total_tokens=(prompt_tokens or 0) + (completion_tokens or 0),
        )

    async def test_connection(self) -> bool:
        """Check the service answers a trivial prompt."""
        try:
            await self.generate("Reply with OK.")
        except CallError as e:
            logger.warning("Gemini connection test failed: %s", e)
            return False
        return True
