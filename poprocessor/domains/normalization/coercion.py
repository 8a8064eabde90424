"""
Coercion - Total conversions from loosely typed JSON values.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any

__all__ = ["to_float", "clean_str", "is_sentinel", "DEFAULT_PLACEHOLDERS"]

DEFAULT_PLACEHOLDERS = ("", "n/a", "na", "unknown", "null", "none", "-")

_SEPARATORS_RE = re.compile(r"[,\s']")
_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d+)?|\.\d+)")
_WHITESPACE_RE = re.compile(r"\s+")


def to_float(value: Any) -> float:
    """
    Coerce a number-ish value to float; never raises.

    Currency codes and symbols, thousands separators and whitespace are
    ignored. Booleans, None and anything without a number become 0.0.

    Example:
        >>> to_float("AED 1,234.50")
        1234.5
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    match = _NUMBER_RE.search(_SEPARATORS_RE.sub("", value))
    if match is None:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def clean_str(value: Any) -> str | None:
    """Strip and collapse whitespace; non-scalars and blanks become None."""
    if value is None or isinstance(value, (dict, list, tuple, set, bool)):
        return None
    text = _WHITESPACE_RE.sub(" ", str(value)).strip()
    return text or None


def is_sentinel(
    value: Any,
    placeholders: Iterable[str] = DEFAULT_PLACEHOLDERS,
    terms: Iterable[str] = (),
) -> bool:
    """
    Whether a value is a placeholder meaning "not found".

    ``placeholders`` are matched exactly (case-insensitive). ``terms`` are
    matched as whole words anywhere in the value.
    """
    text = clean_str(value)
    if text is None:
        return True
    lowered = text.lower()
    if lowered in {p.lower() for p in placeholders}:
        return True
    return any(re.search(rf"\b{re.escape(term.lower())}\b", lowered) for term in terms if term)
