"""
JSON Repair Engine - Turn generated almost-JSON into a parseable object.

The engine is a pipeline of pure stages followed by a parse gate:

    strip_fences -> isolate_object -> [balance -> normalize_quotes
    -> escape_inner_quotes -> remove_trailing_commas] -> json.loads

The bracketed stages are re-run up to ``max_extra_passes`` more times, each
pass adding a more aggressive re-scan. If nothing parses, a RepairFailure
carries the parser's offset and the text around it.

Usage:
    engine = JsonRepairEngine()
    data = engine.parse(response.text)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from poprocessor.config.errors import RepairFailure

from .stages import (
    balance,
    drop_dangling_members,
    escape_inner_quotes,
    insert_missing_commas,
    isolate_object,
    normalize_quotes,
    remove_trailing_commas,
    replace_python_literals,
    strip_comments,
    strip_fences,
    truncate_at_error,
)

logger = logging.getLogger(__name__)

__all__ = ["JsonRepairEngine", "RepairResult"]

CONTEXT_RADIUS = 40


@dataclass(frozen=True)
class RepairResult:
    """Outcome of a repair attempt; exactly one of ``data``/``error`` is set."""

    text: str
    data: dict[str, Any] | None = None
    passes: int = 0
    error: RepairFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _context(text: str, offset: int) -> str:
    start = max(0, offset - CONTEXT_RADIUS)
    return text[start : offset + CONTEXT_RADIUS]


class JsonRepairEngine:
    """
    Bounded, idempotent repair of generated JSON.

    Example:
        >>> engine = JsonRepairEngine()
        >>> engine.repair("Sure! {name: 'Widget', qty: 2,}")
        '{"name": "Widget", "qty": 2}'
    """

    def __init__(self, max_extra_passes: int = 3) -> None:
        """
        Initialize the engine.

        Args:
            max_extra_passes: Re-scans allowed after the first pass fails
        """
        self.max_extra_passes = max_extra_passes

    def repair(self, text: str) -> str:
        """
        Repair text into a JSON object string.

        Raises:
            RepairFailure: No parseable object after all passes
        """
        result = self.try_repair(text)
        if result.error is not None:
            raise result.error
        return result.text

    def parse(self, text: str) -> dict[str, Any]:
        """
        Repair and parse text into a dict.

        Raises:
            RepairFailure: No parseable object after all passes
        """
        result = self.try_repair(text)
        if result.error is not None:
            raise result.error
        return result.data or {}

    def try_repair(self, text: str) -> RepairResult:
        """Repair without raising; failures are returned on the result."""
        candidate = isolate_object(strip_fences(text or ""))
        if not candidate.startswith("{"):
            failure = RepairFailure("No JSON object found in text", 0, _context(text or "", 0))
            return RepairResult(text=candidate, error=failure)

        error: json.JSONDecodeError | None = None
        for level in range(self.max_extra_passes + 1):
            candidate = self._run_pass(candidate, level, error)
            try:
                value = json.loads(candidate)
            except json.JSONDecodeError as e:
                error = e
                logger.debug("Repair pass %d failed at offset %d: %s", level + 1, e.pos, e.msg)
                continue

            if not isinstance(value, dict):
                failure = RepairFailure(
                    "Top-level JSON value is not an object", 0, _context(candidate, 0), level + 1
                )
                return RepairResult(text=candidate, error=failure, passes=level + 1)

            if level:
                logger.debug("Repair succeeded after %d passes", level + 1)
            return RepairResult(text=candidate, data=value, passes=level + 1)

        offset = error.pos if error is not None else 0
        reason = error.msg if error is not None else "parse failed"
        failure = RepairFailure(
            f"Unrecoverable JSON: {reason}",
            offset,
            _context(candidate, offset),
            self.max_extra_passes + 1,
        )
        return RepairResult(text=candidate, error=failure, passes=self.max_extra_passes + 1)

    def _run_pass(
        self,
        text: str,
        level: int,
        error: json.JSONDecodeError | None,
    ) -> str:
        """Stages 3-6, plus the re-scans unlocked at ``level``."""
        if level >= 3 and error is not None:
            truncated = truncate_at_error(text, error.pos)
            if truncated != text:
                logger.warning("Dropped content after offset %d to recover JSON", error.pos)
            text = truncated
        if level >= 2:
            text = replace_python_literals(strip_comments(text))

        text = balance(text)
        text = normalize_quotes(text)
        text = escape_inner_quotes(text)

        if level >= 1:
            text = insert_missing_commas(drop_dangling_members(text))

        return remove_trailing_commas(text)
