"""
Heuristic Text Extractor - Recover readable text from raw document bytes.

Works without a format parser: the bytes are read as latin-1 characters and
three independent pattern strategies pull text out of them:

1. String literals ``( ... )`` with escapes decoded and structure filtered out
2. Text objects ``BT ... ET``, rebuilt line by line from their show operators
3. Long printable runs that contain letters and no structural keywords

Results are merged in first-seen order and normalized.

Example:
    >>> extractor = HeuristicTextExtractor()
    >>> extractor.extract(b"BT (Purchase Order) Tj ET")
    'Purchase Order'
"""

from __future__ import annotations

import logging
import re

from .sanitizer import METADATA_TOKENS, scrub_metadata, strip_non_printable

logger = logging.getLogger(__name__)

__all__ = ["HeuristicTextExtractor"]

# Parenthesised literal, honouring backslash escapes
_LITERAL_RE = re.compile(r"\(((?:[^()\\]|\\.)*)\)", re.DOTALL)
_ESCAPE_RE = re.compile(r"\\([0-7]{1,3}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f"}

_STREAM_BODY_RE = re.compile(r"(stream\r?\n)(.*?)(\r?\nendstream)", re.DOTALL)
_NUM = r"-?(?:\d+(?:\.\d*)?|\.\d+)"
_TEXT_OBJECT_RE = re.compile(r"\bBT\b(.*?)\bET\b", re.DOTALL)
_TEXT_OPERATOR_RE = re.compile(
    r"\[(?P<array>(?:[^\]\\]|\\.)*)\]\s*TJ"
    r"|\((?P<literal>(?:[^()\\]|\\.)*)\)\s*(?P<show>Tj|'|\")"
    rf"|{_NUM}\s+(?P<ty>{_NUM})\s+T[dD]\b"
    rf"|(?:{_NUM}\s+){{5}}(?P<my>{_NUM})\s+Tm\b"
    r"|(?P<star>T\*)",
    re.DOTALL,
)
_PRINTABLE_RUN_RE = re.compile(r"[\x20-\x7E]{10,}")

_STRUCTURAL_WORD_RE = re.compile(r"\b(?:stream|endstream|obj|endobj|xref|trailer|startxref)\b")
_OPERATOR_SYNTAX_RE = re.compile(r"<<|>>|\)\s*T[jJ]|\bT[fdDm]\b|\bBT\b|\bET\b")
_PDF_NAME_RE = re.compile(r"/[A-Za-z]")
_CORRUPTED_RUN_RE = re.compile(r"[\[\];*+{}<>|~^]{3,}")
_NUMERIC_ONLY_RE = re.compile(r"^[\d\s.,:;/\-+()%]+$")
_LETTER_RE = re.compile(r"[A-Za-z]")
_ALNUM_RE = re.compile(r"[A-Za-z0-9]")
_INLINE_SPACE_RE = re.compile(r"[ \t\r\f\v]+")

_MAX_LITERAL_LENGTH = 500
_MIN_LINE_LENGTH = 3
_BINARY_STREAM_PRINTABLE_RATIO = 0.85


def _printable_ratio(text: str) -> float:
    if not text:
        return 1.0
    printable = sum(1 for ch in text if " " <= ch <= "~" or ch in "\n\r\t")
    return printable / len(text)


def _decode_literal(raw: str) -> str:
    """Resolve backslash escapes inside a string literal."""

    def replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if token[0] in "01234567":
            return chr(int(token, 8) & 0xFF)
        if token in "\r\n":
            # Escaped line break is a continuation
            return ""
        return _SIMPLE_ESCAPES.get(token, token)

    return _ESCAPE_RE.sub(replace, raw)


def _has_metadata_token(text: str) -> bool:
    return "\\x" in text or any(token in text for token in METADATA_TOKENS)


class HeuristicTextExtractor:
    """
    Best-effort text recovery from opaque document bytes.

    ``extract`` never raises; when nothing is recoverable it returns "".
    """

    def extract(self, data: bytes | str) -> str:
        """
        Recover readable text from raw bytes.

        Args:
            data: Raw document bytes (str input is used as-is)

        Returns:
            Newline-separated text, deduplicated and scrubbed
        """
        if not data:
            return ""

        content = data if isinstance(data, str) else data.decode("latin-1")
        content = self._blank_binary_streams(content)

        seen: set[str] = set()
        merged: list[str] = []
        for strategy in (
            self._from_literals,
            self._from_text_objects,
            self._from_printable_runs,
        ):
            for line in strategy(content):
                key = line.strip()
                if key and key not in seen:
                    seen.add(key)
                    merged.append(key)

        text = self._normalize(merged)
        logger.debug("Heuristic extraction recovered %d chars", len(text))
        return text

    # --- Pre-filtering ---

    def _blank_binary_streams(self, content: str) -> str:
        """Blank out compressed or image stream bodies, keep plain-text ones."""

        def replace(match: re.Match[str]) -> str:
            body = match.group(2)
            if _printable_ratio(body) >= _BINARY_STREAM_PRINTABLE_RATIO:
                return match.group(0)
            return f"{match.group(1)} {match.group(3)}"

        return _STREAM_BODY_RE.sub(replace, content)

    # --- Strategies ---

    def _from_literals(self, content: str) -> list[str]:
        """Strategy 1: filtered string literals outside text objects."""
        # Text objects are rebuilt whole by strategy 2
        owned = [block.span() for block in _TEXT_OBJECT_RE.finditer(content)]
        lines = []
        for match in _LITERAL_RE.finditer(content):
            if any(start <= match.start() < end for start, end in owned):
                continue
            raw = match.group(1)
            if raw.startswith(("/", "\\")) or _has_metadata_token(raw):
                continue
            text = strip_non_printable(_decode_literal(raw)).strip()
            if self._is_plausible(text):
                lines.append(text)
        return lines

    def _from_text_objects(self, content: str) -> list[str]:
        """Strategy 2: text objects, with show operators joined into lines."""
        lines = []
        for block in _TEXT_OBJECT_RE.finditer(content):
            current: list[str] = []
            last_matrix_y: str | None = None

            def flush() -> None:
                line = " ".join(part for part in current if part)
                if line and _ALNUM_RE.search(line):
                    lines.append(line)
                current.clear()

            for op in _TEXT_OPERATOR_RE.finditer(block.group(1)):
                if op.group("array") is not None:
                    pieces = _LITERAL_RE.findall(op.group("array"))
                    current.append("".join(_decode_literal(p) for p in pieces).strip())
                elif op.group("literal") is not None:
                    if op.group("show") in ("'", '"'):
                        flush()
                    current.append(_decode_literal(op.group("literal")).strip())
                elif op.group("ty") is not None:
                    if float(op.group("ty") or 0) != 0:
                        flush()
                elif op.group("my") is not None:
                    if last_matrix_y is not None and op.group("my") != last_matrix_y:
                        flush()
                    last_matrix_y = op.group("my")
                elif op.group("star"):
                    flush()
            flush()

        return [
            strip_non_printable(line).strip()
            for line in lines
            if not line.startswith("/") and not _has_metadata_token(line)
        ]

    def _from_printable_runs(self, content: str) -> list[str]:
        """Strategy 3: long printable runs without structure."""
        lines = []
        for match in _PRINTABLE_RUN_RE.finditer(content):
            run = match.group(0).strip()
            if not _LETTER_RE.search(run):
                continue
            if _STRUCTURAL_WORD_RE.search(run) or _OPERATOR_SYNTAX_RE.search(run):
                continue
            if run.startswith(("/", "(", "[(")) or len(_PDF_NAME_RE.findall(run)) >= 2:
                continue
            if _has_metadata_token(run):
                continue
            lines.append(run)
        return lines

    # --- Filtering & normalization ---

    def _is_plausible(self, text: str) -> bool:
        if not text or len(text) >= _MAX_LITERAL_LENGTH:
            return False
        if not _LETTER_RE.search(text) or _NUMERIC_ONLY_RE.match(text):
            return False
        if _CORRUPTED_RUN_RE.search(text):
            return False
        return True

    def _normalize(self, lines: list[str]) -> str:
        seen: set[str] = set()
        result = []
        for chunk in lines:
            for line in chunk.split("\n"):
                line = _INLINE_SPACE_RE.sub(" ", strip_non_printable(scrub_metadata(line)))
                line = line.strip()
                if len(line) < _MIN_LINE_LENGTH or not _ALNUM_RE.search(line):
                    continue
                if line in seen:
                    continue
                seen.add(line)
                result.append(line)
        return "\n".join(result)
