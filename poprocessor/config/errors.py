"""
Error Taxonomy - Closed set of error kinds for the extraction pipeline.

Callers branch on the exception class (or ``code``), never on message text.

Usage:
    from poprocessor.config.errors import ExtractionFailure, RepairFailure

    raise ExtractionFailure("No readable text recovered", {"filename": "po.pdf"})
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Generation service errors
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"
    LLM_QUOTA_EXHAUSTED = "LLM_QUOTA_EXHAUSTED"
    LLM_AUTH_FAILED = "LLM_AUTH_FAILED"
    LLM_INVALID_REQUEST = "LLM_INVALID_REQUEST"

    # Content errors
    REPAIR_FAILED = "REPAIR_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"

    # Record errors
    VALIDATION_FAILED = "VALIDATION_FAILED"
    DOCUMENT_KIND_MISMATCH = "DOCUMENT_KIND_MISMATCH"

    # Security errors
    SECURITY_RATE_LIMITED = "SECURITY_RATE_LIMITED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    BAD_REQUEST = "BAD_REQUEST"


class POProcessorError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


# --- Generation call errors ---


class CallError(POProcessorError):
    """Failure of a call to the external generation service."""


class TransientCallError(CallError):
    """Network error, timeout or explicit rate-limit signal. Retryable."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_UNAVAILABLE,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(code, message, details)
        self.retry_after = retry_after
        if retry_after is not None:
            self.details.setdefault("retry_after", retry_after)


class NonTransientCallError(CallError):
    """Authorization or malformed request. Never retried."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_INVALID_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(code, message, details)


class QuotaExhaustedError(NonTransientCallError):
    """Daily quota is spent; the caller sets the governor's quota flag."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, ErrorCode.LLM_QUOTA_EXHAUSTED, details)


# --- Content errors ---


class RepairFailure(POProcessorError):
    """JSON could not be recovered after all bounded repair passes."""

    def __init__(
        self,
        message: str,
        offset: int,
        context: str = "",
        passes: int = 0,
    ) -> None:
        super().__init__(
            ErrorCode.REPAIR_FAILED,
            message,
            {"offset": offset, "context": context, "passes": passes},
        )
        self.offset = offset
        self.context = context
        self.passes = passes


class ExtractionFailure(POProcessorError):
    """No readable text could be recovered from the document."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.EXTRACTION_FAILED, message, details)


# --- Record errors ---


class ValidationFailure(POProcessorError):
    """Record fails the required-field policy; the partial record is attached."""

    def __init__(
        self,
        message: str,
        record: Any = None,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ) -> None:
        super().__init__(code, message, details)
        self.record = record


class DocumentKindMismatch(ValidationFailure):
    """Content was usable but the document is not of the expected kind."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            record=None,
            details=details,
            code=ErrorCode.DOCUMENT_KIND_MISMATCH,
        )
