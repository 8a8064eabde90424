"""
Readability Gate - Decide whether candidate text is worth sending downstream.
"""

from __future__ import annotations

import re

__all__ = ["is_readable"]

_WORD_RE = re.compile(r"[A-Za-z]{3,}")
_DOMAIN_KEYWORD_RE = re.compile(
    r"\b(?:po|purchase|order|customer|item|total|quotation|quote|inquiry|enquiry"
    r"|qty|quantity|price|invoice|rfq)\b",
    re.IGNORECASE,
)
_AMOUNT_RE = re.compile(r"\d+\.\d{2}\b")


def is_readable(text: str, min_length: int = 200) -> bool:
    """
    Check candidate text looks like a business document.

    Args:
        text: Candidate text
        min_length: Length the text must exceed

    Returns:
        True if the text is long enough, has real words, and mentions
        domain vocabulary or currency-like amounts
    """
    if not text or len(text) <= min_length:
        return False
    if not _WORD_RE.search(text):
        return False
    return bool(_DOMAIN_KEYWORD_RE.search(text) or _AMOUNT_RE.search(text))
