"""
Configuration - Application settings and error taxonomy.
"""

from .errors import (
    CallError,
    DocumentKindMismatch,
    ErrorCode,
    ExtractionFailure,
    NonTransientCallError,
    POProcessorError,
    QuotaExhaustedError,
    RepairFailure,
    TransientCallError,
    ValidationFailure,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "POProcessorError",
    "CallError",
    "TransientCallError",
    "NonTransientCallError",
    "QuotaExhaustedError",
    "RepairFailure",
    "ExtractionFailure",
    "ValidationFailure",
    "DocumentKindMismatch",
]
