"""
Table Fallback - Line items recovered directly from raw text rows.

Used when the structured output has no usable items. Row patterns are
independent and tried in order; the first that yields at least one
acceptable row wins.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .coercion import clean_str, to_float

logger = logging.getLogger(__name__)

__all__ = ["extract_table_items", "TABLE_PATTERNS"]

_NUM = r"\d[\d,]*(?:\.\d+)?"
_UNITS = (
    r"(?:BAGS?|PCS|PC|EA|EACH|KGS?|UNITS?|NOS|NO|SETS?|BOX(?:ES)?|ROLLS?|PAIRS?|PR"
    r"|PIECES?|LTRS?|L|MTRS?|M|CTNS?|DRUMS?|LOT)"
)

PIPE_ROW_RE = re.compile(
    rf"^[ \t]*\|?[ \t]*(?:(\d+)[ \t]*\|[ \t]*)?([^|\n]*[A-Za-z][^|\n]*?)[ \t]*\|[ \t]*({_NUM})[ \t]*\|"
    rf"[ \t]*(?:([A-Za-z]{{1,6}})[ \t]*\|[ \t]*)?({_NUM})[ \t]*\|[ \t]*({_NUM})[ \t]*\|?[ \t]*$",
    re.MULTILINE,
)
SAP_ROW_RE = re.compile(
    rf"^[ \t]*(\d{{1,4}})[ \t]+(\d{{6,}})[ \t]+(\S.*?)[ \t]+({_NUM})[ \t]+([A-Za-z]{{1,6}})"
    rf"[ \t]+({_NUM})[ \t]+({_NUM})[ \t]*$",
    re.MULTILINE,
)
DESCRIPTION_ROW_RE = re.compile(
    rf"^[ \t]*([A-Za-z][^\n]*?)[ \t]+({_NUM})[ \t]+({_UNITS})[ \t]+({_NUM})[ \t]+({_NUM})[ \t]*$",
    re.MULTILINE | re.IGNORECASE,
)
LABELLED_BLOCK_RE = re.compile(
    rf"Item\s*No[.:\s]*(\w[\w\-]*)[\s\S]{{0,80}}?Description[:\s]*([^\n]+?)\s*(?:\n|$)"
    rf"[\s\S]{{0,120}}?(?:Quantity|Qty)[:\s]*({_NUM})"
    rf"[\s\S]{{0,120}}?(?:Unit\s*Price|Price|Rate)[:\s]*({_NUM})"
    rf"[\s\S]{{0,120}}?Total(?:\s*Price)?[:\s]*({_NUM})",
    re.IGNORECASE,
)
GENERIC_ROW_RE = re.compile(
    rf"^[ \t]*([A-Za-z0-9][\w\-]*)[ \t]+([^\n]*?[A-Za-z][^\n]*?)[ \t]+({_NUM})[ \t]+({_NUM})[ \t]+({_NUM})[ \t]*$",
    re.MULTILINE,
)


def _pipe_row(match: re.Match[str]) -> dict[str, Any]:
    code, name, qty, unit, price, total = match.groups()
    return {"itemCode": code, "itemName": name, "quantity": qty, "unit": unit, "unitPrice": price, "total": total}


def _sap_row(match: re.Match[str]) -> dict[str, Any]:
    _, code, name, qty, unit, price, total = match.groups()
    return {"itemCode": code, "itemName": name, "quantity": qty, "unit": unit, "unitPrice": price, "total": total}


def _description_row(match: re.Match[str]) -> dict[str, Any]:
    name, qty, unit, price, total = match.groups()
    return {"itemName": name, "quantity": qty, "unit": unit, "unitPrice": price, "total": total}


def _labelled_block(match: re.Match[str]) -> dict[str, Any]:
    code, name, qty, price, total = match.groups()
    return {"itemCode": code, "itemName": name, "quantity": qty, "unitPrice": price, "total": total}


def _generic_row(match: re.Match[str]) -> dict[str, Any]:
    code, name, qty, price, total = match.groups()
    return {"itemCode": code, "itemName": name, "quantity": qty, "unitPrice": price, "total": total}


TABLE_PATTERNS = (
    ("pipe", PIPE_ROW_RE, _pipe_row),
    ("sap", SAP_ROW_RE, _sap_row),
    ("description", DESCRIPTION_ROW_RE, _description_row),
    ("labelled", LABELLED_BLOCK_RE, _labelled_block),
    ("generic", GENERIC_ROW_RE, _generic_row),
)


def _acceptable(row: dict[str, Any]) -> bool:
    name = clean_str(row.get("itemName")) or ""
    return len(name) > 3 and to_float(row.get("quantity")) > 0 and to_float(row.get("unitPrice")) > 0


def extract_table_items(text: str) -> list[dict[str, Any]]:
    """
    Recover raw line-item rows from text.

    Args:
        text: Raw document text

    Returns:
        Row dicts keyed like generated line items (``itemName``,
        ``quantity``, ``unitPrice``...); empty if no pattern matched
    """
    if not text:
        return []

    for name, pattern, to_row in TABLE_PATTERNS:
        rows = [row for row in map(to_row, pattern.finditer(text)) if _acceptable(row)]
        if rows:
            logger.debug("Recovered %d line items with %s row pattern", len(rows), name)
            return rows
    return []
