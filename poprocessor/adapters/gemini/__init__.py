"""
Gemini Adapter - Google Gemini API client.

This is the ONLY place that calls the Gemini API.
The pipeline reaches it through the GenerationClient contract.
"""

from .client import GeminiClient, classify_error, detect_rate_limit_type
from .models import GeminiConfig, GeminiResponse, InlineDocument

__all__ = [
    "GeminiClient",
    "GeminiConfig",
    "GeminiResponse",
    "InlineDocument",
    "classify_error",
    "detect_rate_limit_type",
]
