"""
Extraction Domain - Raw document bytes to candidate text.

This domain handles:
- Heuristic text recovery from document bytes
- Format-noise sanitizing before prompting
- The readability gate used by the pipeline
"""

from .contracts import TextExtractor
from .extractor import HeuristicTextExtractor
from .models import SourceDocument
from .quality import is_readable
from .sanitizer import sanitize_text

__all__ = [
    # Contracts
    "TextExtractor",
    # Models
    "SourceDocument",
    # Implementations
    "HeuristicTextExtractor",
    "is_readable",
    "sanitize_text",
]
