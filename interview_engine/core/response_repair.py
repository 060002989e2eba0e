"""Turn raw completion text into parsed JSON, repairing common defects.

Pipeline (first success wins):
1. Strict json.loads
2. Repairs applied cumulatively in a fixed order, re-parsing after each one
   that changed the text:
   strip_code_fences -> remove_trailing_commas -> collapse_string_whitespace
   -> quote_unquoted_keys
3. recover_truncated at the offset of the last parse error
4. ChunkParseError carrying the untouched raw text

Every repair is a pure str -> str function that is aware of JSON string
literals, so text inside values is never rewritten as if it were structure.

Truncation recovery only ever removes content: it cuts at the failure point,
drops the dangling tail and closes open brackets. Whenever the retained
prefix is ambiguous it raises rather than guess.
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from interview_engine.core.errors import ChunkParseError

logger = logging.getLogger(__name__)


@dataclass
class ParseOutcome:
    """Parsed data plus the names of the repair steps that were needed."""

    data: Any
    repairs_applied: list[str] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return bool(self.repairs_applied)


# =============================================================================
# Repair steps
# =============================================================================

_FENCE_PATTERN = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\n?(.*?)(?:\n?[ \t]*```|$)", re.DOTALL)


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the JSON value opened at text[start], if it closes."""
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def strip_code_fences(text: str) -> str:
    """Remove markdown fences and any prose around the first JSON value.

    Text before the first { or [ is dropped. If that value closes, anything
    after its closing bracket is dropped too; an unclosed value is kept to
    the end so truncation recovery can still see it.
    """
    cleaned = text.strip()
    match = _FENCE_PATTERN.search(cleaned)
    if match:
        cleaned = match.group(1).strip()

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not starts:
        return cleaned
    start = min(starts)
    end = _balanced_end(cleaned, start)
    return cleaned[start:end] if end is not None else cleaned[start:]


def remove_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing } or ]."""
    out: list[str] = []
    in_string = False
    escape = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < len(text) and text[j].isspace():
                j += 1
            if j < len(text) and text[j] in "}]":
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def collapse_string_whitespace(text: str) -> str:
    """Collapse raw line breaks and control characters inside string literals.

    Every run of raw control characters becomes a single space. Structure
    outside strings is untouched.
    """
    out: list[str] = []
    in_string = False
    escape = False
    i = 0
    while i < len(text):
        ch = text[i]
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            i += 1
            continue
        if escape:
            escape = False
            out.append(ch)
            i += 1
            continue
        if ch == "\\":
            escape = True
        elif ch == '"':
            in_string = False
        elif ch < " ":
            j = i
            while j < len(text) and text[j] < " ":
                j += 1
            out.append(" ")
            i = j
            continue
        out.append(ch)
        i += 1
    return "".join(out)


_BARE_KEY = re.compile(r"[A-Za-z_$][\w$-]*")


def quote_unquoted_keys(text: str) -> str:
    """Quote bare identifier keys: {key: 1} -> {"key": 1}."""
    out: list[str] = []
    in_string = False
    escape = False
    expect_key = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            out.append(ch)
            i += 1
            continue
        if ch == '"':
            in_string = True
            expect_key = False
        elif ch in "{,":
            expect_key = True
        elif expect_key and not ch.isspace():
            expect_key = False
            match = _BARE_KEY.match(text, i)
            if match:
                j = match.end()
                while j < len(text) and text[j].isspace():
                    j += 1
                if j < len(text) and text[j] == ":":
                    out.append(f'"{match.group(0)}"')
                    i = match.end()
                    continue
        out.append(ch)
        i += 1
    return "".join(out)


REPAIR_STEPS: list[tuple[str, Callable[[str], str]]] = [
    ("strip_code_fences", strip_code_fences),
    ("remove_trailing_commas", remove_trailing_commas),
    ("collapse_string_whitespace", collapse_string_whitespace),
    ("quote_unquoted_keys", quote_unquoted_keys),
]


# =============================================================================
# Truncation recovery
# =============================================================================


@dataclass
class _ScanState:
    stack: list[str]
    in_string: bool
    last_string_start: int | None
    last_string_is_key: bool


def _scan(text: str) -> _ScanState:
    """Bracket stack and string state at the end of text.

    Raises:
        ValueError: On a closing bracket that does not match the open one.
    """
    stack: list[str] = []
    in_string = False
    escape = False
    last_start: int | None = None
    is_key = False
    prev = ""
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                prev = '"'
            continue
        if ch == '"':
            in_string = True
            last_start = i
            is_key = bool(stack) and stack[-1] == "{" and prev in ("{", ",")
        elif ch in "{[":
            stack.append(ch)
            prev = ch
        elif ch in "}]":
            opener = "{" if ch == "}" else "["
            if not stack or stack[-1] != opener:
                raise ValueError(f"mismatched '{ch}' at offset {i}")
            stack.pop()
            prev = ch
        elif not ch.isspace():
            prev = ch
    return _ScanState(stack, in_string, last_start, is_key)


def recover_truncated(text: str, offset: int | None = None) -> str:
    """Salvage the complete part of a truncated JSON document.

    Keeps text[:offset], trims the dangling tail (whitespace, trailing comma,
    a key without its value, an empty opener) and appends the closers that
    balance the brackets still open.

    Args:
        text: The (already repaired) response text.
        offset: Where parsing failed; defaults to the end of text.

    Returns:
        Closed JSON text. Only ever a subset of what the response contained.

    Raises:
        ChunkParseError: If brackets are mismatched, the prefix ends inside a
            string, the prefix ends in a bare scalar that is also the end of
            the raw text (it may itself be cut short), or nothing is left.
    """
    if offset is None:
        offset = len(text)
    prefix = text[:offset]
    at_raw_end = not text[offset:].strip()
    trimmed_structure = False

    while True:
        try:
            state = _scan(prefix)
        except ValueError as e:
            raise ChunkParseError(f"Cannot recover truncated response: {e}", text, offset) from e
        if state.in_string:
            raise ChunkParseError("Cannot recover truncated response: unterminated string", text, offset)

        stripped = prefix.rstrip()
        if stripped != prefix:
            prefix = stripped
            continue
        if not prefix:
            raise ChunkParseError("Cannot recover truncated response: nothing complete to keep", text, offset)

        last = prefix[-1]
        if last == ",":
            prefix = prefix[:-1]
        elif last == ":":
            key_part = prefix[:-1].rstrip()
            key_state = _scan(key_part)
            if not key_part.endswith('"') or key_state.last_string_start is None:
                raise ChunkParseError("Cannot recover truncated response: dangling ':'", text, offset)
            prefix = key_part[:key_state.last_string_start]
        elif last == '"' and state.last_string_is_key:
            prefix = prefix[:state.last_string_start]
        elif last in "{[":
            prefix = prefix[:-1]
        else:
            if last not in '"}]' and at_raw_end and not trimmed_structure:
                raise ChunkParseError(
                    "Cannot recover truncated response: trailing value may be incomplete", text, offset,
                )
            break
        trimmed_structure = True

    closers = "".join("}" if opener == "{" else "]" for opener in reversed(state.stack))
    return prefix + closers


# =============================================================================
# Entry point
# =============================================================================


def _loads(text: str) -> tuple[bool, Any, json.JSONDecodeError | None]:
    try:
        return True, json.loads(text), None
    except json.JSONDecodeError as e:
        return False, None, e


def repair_and_parse(raw: str) -> ParseOutcome:
    """Parse a raw response, applying repairs only as far as needed.

    Raises:
        ChunkParseError: When no repair produces valid JSON.
    """
    if raw is None or not raw.strip():
        raise ChunkParseError("Empty response", raw or "", 0)

    ok, data, error = _loads(raw)
    if ok:
        return ParseOutcome(data)

    text = raw
    applied: list[str] = []
    for name, step in REPAIR_STEPS:
        repaired = step(text)
        if repaired == text:
            continue
        text = repaired
        applied.append(name)
        ok, data, step_error = _loads(text)
        if ok:
            logger.debug(f"Response repaired with {applied}")
            return ParseOutcome(data, applied)
        error = step_error

    # error always refers to the current text
    offset = error.pos if error is not None else len(text)
    try:
        recovered = recover_truncated(text, offset)
    except ChunkParseError as e:
        raise ChunkParseError(str(e), raw, e.offset) from e

    ok, data, final_error = _loads(recovered)
    if not ok:
        raise ChunkParseError(f"Unparseable response: {final_error.msg}", raw, final_error.pos)

    applied.append("recover_truncated")
    logger.debug(f"Truncated response recovered with {applied}")
    return ParseOutcome(data, applied)
