"""
Date Parsing - Lenient parsing of the date formats found on business documents.
"""

from __future__ import annotations

import datetime as dt
import re

__all__ = ["parse_date", "expand_year"]

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_ISO_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ][\d:.]+(?:Z|[+-]\d{2}:?\d{2})?)?\b")
_COMPACT_RE = re.compile(r"\b(\d{1,2})[-\s.]?([A-Za-z]{3,4})[-\s.]?(\d{2}|\d{4})\b")
_DAY_MONTH_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]{3,9})\.?,?\s+(\d{4})\b")
_MONTH_DAY_RE = re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b")
_NUMERIC_RE = re.compile(r"\b(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4}|\d{2})\b")


def expand_year(year: int, pivot: int = 50) -> int:
    """Expand a two-digit year: above ``pivot`` is 19xx, otherwise 20xx."""
    if year >= 100:
        return year
    return 1900 + year if year > pivot else 2000 + year


def _month(name: str) -> int | None:
    name = name.lower()
    if name in MONTHS:
        return MONTHS[name]
    for prefix, number in MONTHS.items():
        if len(prefix) == 3 and name.startswith(prefix) and len(name) > 3:
            return number
    return None


def _build(year: int, month: int | None, day: int, pivot: int) -> dt.date | None:
    if month is None:
        return None
    try:
        return dt.date(expand_year(year, pivot), month, day)
    except ValueError:
        return None


def parse_date(text: str | None, pivot: int = 50) -> dt.date | None:
    """
    Parse the first recognizable date in ``text``.

    Accepted formats, tried in order:
        - ISO ``2025-05-12`` (optionally with a time part)
        - compact ``12May25`` / ``12-May-2025``
        - ``12 May 2025``
        - ``May 12, 2025``
        - numeric ``12/05/2025``; day first unless only month-first is valid

    Args:
        text: Text containing a date
        pivot: Two-digit years above this are 19xx, the rest 20xx

    Returns:
        The parsed date, or None
    """
    if not text:
        return None

    match = _ISO_RE.search(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        parsed = _build(year, month, day, pivot)
        if parsed:
            return parsed

    for pattern, order in (
        (_COMPACT_RE, "dmy"),
        (_DAY_MONTH_RE, "dmy"),
        (_MONTH_DAY_RE, "mdy"),
    ):
        for match in pattern.finditer(text):
            if order == "dmy":
                day, month_name, year = match.groups()
            else:
                month_name, day, year = match.groups()
            parsed = _build(int(year), _month(month_name), int(day), pivot)
            if parsed:
                return parsed

    for match in _NUMERIC_RE.finditer(text):
        first, second, year = (int(g) for g in match.groups())
        if second > 12 and first <= 12:
            first, second = second, first
        parsed = _build(year, second, first, pivot)
        if parsed:
            return parsed

    return None
