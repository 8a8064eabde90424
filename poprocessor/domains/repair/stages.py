"""
Repair Stages - Pure ``str -> str`` transformations for almost-JSON text.

Every stage is idempotent: applying it to its own output changes nothing.
All stages share one notion of where strings begin and end (see
``closes_string``), so a stray quote inside a value is judged the same way
by every stage.
"""

from __future__ import annotations

import re

__all__ = [
    "closes_string",
    "strip_fences",
    "isolate_object",
    "balance",
    "normalize_quotes",
    "escape_inner_quotes",
    "remove_trailing_commas",
    "drop_dangling_members",
    "insert_missing_commas",
    "strip_comments",
    "replace_python_literals",
    "truncate_at_error",
]

_STRUCTURAL = frozenset(":,}]")
_KEY_OPENERS = frozenset({"", "{", ",", "["})
_VALUE_OPENERS = frozenset({"", "{", ",", "[", ":"})
_VALID_ESCAPES = frozenset('"\\/bfnrt')
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}

_FENCE_OPEN_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```\s*$")
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$\-]*")
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")
_STRING = r'"(?:[^"\\]|\\.)*"'
_DANGLING_KEY_RE = re.compile(rf",\s*{_STRING}\s*:\s*(?=[}}\]])|(?<=\{{)\s*{_STRING}\s*:\s*(?=\}})")
_DANGLING_NAME_RE = re.compile(rf",\s*{_STRING}\s*(?=\}})")
_VALUE_END_RE = re.compile(r"(?:[\d}\]]|\btrue|\bfalse|\bnull)\s*$")
_PYTHON_LITERALS = {"True": "true", "False": "false", "None": "null"}
_PYTHON_LITERAL_RE = re.compile(r"\b(True|False|None)\b")


# --- String scanning ---


def closes_string(text: str, index: int) -> bool:
    """
    Decide whether the quote at ``index``, met inside a string, ends it.

    A quote ends the string when the next character is structural
    (``:``, ``,``, ``}``, ``]``) or the input ends. After whitespace, the
    next non-blank character decides, and a line break always ends it.
    """
    n = len(text)
    j = index + 1
    if j >= n or text[j] in _STRUCTURAL:
        return True
    if not text[j].isspace():
        return False

    saw_newline = False
    while j < n and text[j].isspace():
        saw_newline = saw_newline or text[j] == "\n"
        j += 1
    return j >= n or saw_newline or text[j] in _STRUCTURAL


def _string_end(text: str, start: int, quote: str = '"') -> int:
    """Index of the quote closing the string opened at ``start``, or len(text)."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote and closes_string(text, i):
            return i
        i += 1
    return n


def _segments(text: str) -> list[tuple[str, bool]]:
    """Split text into (chunk, is_string) pieces; string chunks keep their quotes."""
    pieces: list[tuple[str, bool]] = []
    i = 0
    n = len(text)
    outside_start = 0
    while i < n:
        if text[i] == '"':
            if outside_start < i:
                pieces.append((text[outside_start:i], False))
            end = _string_end(text, i)
            pieces.append((text[i : end + 1], True))
            i = end + 1
            outside_start = i
        else:
            i += 1
    if outside_start < n:
        pieces.append((text[outside_start:], False))
    return pieces


def _outside_indices(text: str) -> tuple[list[int], bool]:
    """Indices of characters outside strings, and whether the text ends inside one."""
    indices: list[int] = []
    offset = 0
    ends_in_string = False
    for chunk, is_string in _segments(text):
        if is_string:
            ends_in_string = len(chunk) < 2 or _string_end(chunk, 0) >= len(chunk)
        else:
            indices.extend(range(offset, offset + len(chunk)))
            ends_in_string = False
        offset += len(chunk)
    return indices, ends_in_string


# --- Stage 1-6 ---


def strip_fences(text: str) -> str:
    """Stage 1: remove a markdown code fence wrapped around the payload."""
    stripped = text.strip()
    stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    return stripped.strip()


def isolate_object(text: str) -> str:
    """
    Stage 2: keep only the object, from the first ``{`` to its close.

    An object that never closes (truncated output) is kept to the end of
    the input, unless only prose follows the last ``}``.
    """
    start = text.find("{")
    if start == -1:
        return text.strip()

    body = text[start:]
    indices, _ = _outside_indices(body)
    depth = 0
    for index in indices:
        ch = body[index]
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return body[: index + 1]

    last = body.rfind("}")
    if last != -1 and not any(ch in body[last + 1 :] for ch in '"{[:'):
        return body[: last + 1]
    return body.rstrip()


def balance(text: str) -> str:
    """Stage 3: close an unterminated string, then any open ``{``/``[``."""
    indices, ends_in_string = _outside_indices(text)
    stack: list[str] = []
    for index in indices:
        ch = text[index]
        if ch in "{[":
            stack.append(ch)
        elif ch == "}" and stack and stack[-1] == "{":
            stack.pop()
        elif ch == "]" and stack and stack[-1] == "[":
            stack.pop()

    if ends_in_string:
        trailing = len(text) - len(text.rstrip("\\"))
        if trailing % 2:
            text = text[:-1]
        text += '"'

    closers = "".join("}" if opener == "{" else "]" for opener in reversed(stack))
    return text + closers


def _requote(content: str) -> str:
    """Turn the body of a single-quoted string into a double-quoted body."""
    content = content.replace("\\'", "'")
    return re.sub(r'(?<!\\)"', '\\"', content)


def normalize_quotes(text: str) -> str:
    """Stage 4: quote bare keys; rewrite single-quoted keys and values."""
    out: list[str] = []
    last = ""
    i = 0
    n = len(text)

    def emit(chunk: str) -> None:
        nonlocal last
        out.append(chunk)
        stripped = chunk.strip()
        if stripped:
            last = stripped[-1]

    while i < n:
        ch = text[i]
        if ch == '"':
            end = _string_end(text, i)
            emit(text[i : end + 1])
            i = end + 1
        elif ch == "'" and last in _VALUE_OPENERS:
            end = _string_end(text, i, quote="'")
            closing = '"' if end < n else ""
            emit('"' + _requote(text[i + 1 : end]) + closing)
            i = end + 1
        elif last in _KEY_OPENERS and (ch.isalpha() or ch in "_$"):
            match = _IDENT_RE.match(text, i)
            if match is None:
                emit(ch)
                i += 1
                continue
            j = match.end()
            k = j
            while k < n and text[k].isspace():
                k += 1
            word = match.group(0)
            emit(f'"{word}"' if k < n and text[k] == ":" else word)
            i = j
        else:
            emit(ch)
            i += 1
    return "".join(out)


def escape_inner_quotes(text: str) -> str:
    """
    Stage 5: escape quotes that are content, not string boundaries.

    Also escapes raw control characters inside strings and repairs
    invalid backslash escapes.
    """
    out: list[str] = []
    in_string = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            i += 1
            continue

        if ch == "\\":
            nxt = text[i + 1] if i + 1 < n else ""
            if nxt == "u" and _HEX4_RE.match(text, i + 2):
                out.append(text[i : i + 6])
                i += 6
            elif nxt and nxt in _VALID_ESCAPES:
                out.append(ch + nxt)
                i += 2
            elif nxt == "'":
                out.append("'")
                i += 2
            else:
                out.append("\\\\")
                i += 1
        elif ch == '"':
            if closes_string(text, i):
                in_string = False
                out.append(ch)
            else:
                out.append('\\"')
            i += 1
        elif ch in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[ch])
            i += 1
        elif ord(ch) < 0x20:
            out.append(f"\\u{ord(ch):04x}")
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """Stage 6: drop commas directly before ``}`` or ``]``, until stable."""
    while True:
        indices, _ = _outside_indices(text)
        outside = set(indices)
        drop: set[int] = set()
        for index in indices:
            if text[index] != ",":
                continue
            j = index + 1
            while j < len(text) and j in outside and text[j].isspace():
                j += 1
            if j < len(text) and j in outside and text[j] in "}]":
                drop.add(index)
        if not drop:
            return text
        text = "".join(ch for i, ch in enumerate(text) if i not in drop)


# --- Aggressive re-scan stages ---


def drop_dangling_members(text: str) -> str:
    """Remove members cut off before their value (``"key":`` or ``"key"`` then ``}``)."""
    previous = None
    while previous != text:
        previous = text
        text = _DANGLING_KEY_RE.sub("", text)
        text = _DANGLING_NAME_RE.sub("", text)
    return text


def insert_missing_commas(text: str) -> str:
    """Insert commas between members separated only by a line break."""
    pieces = _segments(text)
    out: list[str] = []
    for index, (chunk, is_string) in enumerate(pieces):
        next_is_string = index + 1 < len(pieces) and pieces[index + 1][1]
        if not is_string and next_is_string:
            head = chunk.rstrip()
            tail = chunk[len(head) :]
            previous_is_string = index > 0 and pieces[index - 1][1]
            ends_value = (head == "" and previous_is_string) or bool(
                head and _VALUE_END_RE.search(head)
            )
            if "\n" in tail and ends_value:
                out.append(head + "," + tail)
                continue
        out.append(chunk)
    return "".join(out)


def strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside strings."""
    out: list[str] = []
    for chunk, is_string in _segments(text):
        if is_string:
            out.append(chunk)
            continue
        chunk = re.sub(r"/\*.*?(?:\*/|$)", "", chunk, flags=re.DOTALL)
        chunk = re.sub(r"//[^\n]*", "", chunk)
        out.append(chunk)
    return "".join(out)


def replace_python_literals(text: str) -> str:
    """Map ``True``/``False``/``None`` outside strings to JSON literals."""
    return "".join(
        chunk
        if is_string
        else _PYTHON_LITERAL_RE.sub(lambda m: _PYTHON_LITERALS[m.group(1)], chunk)
        for chunk, is_string in _segments(text)
    )


def truncate_at_error(text: str, offset: int) -> str:
    """Cut back to the last complete member before ``offset`` and re-close."""
    indices, _ = _outside_indices(text)
    commas = [index for index in indices if index < offset and text[index] == ","]
    if not commas:
        return text
    return balance(text[: commas[-1]])
