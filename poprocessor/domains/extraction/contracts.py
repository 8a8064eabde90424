"""
Extraction Contracts - Interfaces for text recovery.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextExtractor(Protocol):
    """
    Contract for turning document bytes into candidate text.

    Implementations never raise; total failure is an empty string.

    Example:
        >>> class PlainText:
        ...     def extract(self, data: bytes) -> str:
        ...         return data.decode("utf-8", errors="ignore")
        >>> assert isinstance(PlainText(), TextExtractor)
    """

    def extract(self, data: bytes) -> str:
        """
        Recover readable text from raw bytes.

        Args:
            data: Raw document bytes

        Returns:
            Best-effort plain text, or "" when nothing was recovered
        """
        ...
