"""Robust JSON parsing for LLM-generated content.

Models wrap JSON in markdown fences, leave raw newlines and quotes inside
strings, emit invalid backslash escapes and trailing commas, and get cut
off mid-document when they hit the token limit. sanitize_and_fix_json
handles the cosmetic problems; parse_json escalates through repair
heuristics and raises JSONRepairError when nothing works.

Usage:
    from thotnet.utils.json_fixer import loads_llm_json

    data = loads_llm_json(raw_response, context="course outline")
"""

from __future__ import annotations

import json
import re
from typing import Any

import structlog

from thotnet.utils.text_utils import strip_think

logger = structlog.get_logger(__name__)

# Control characters except \t \n \r, plus C1 controls
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_FENCE_LANG = re.compile(r"^[A-Za-z]*[ \t]*\r?\n?")
_TRAILING_COMMA = re.compile(r",\s*(?=[\]}])")

VALID_ESCAPES = set('"\\/bfnrtu')
STRUCTURAL_AFTER_STRING = {",", "}", "]", ":"}
MAX_TRUNCATION_CUTS = 50


class JSONRepairError(ValueError):
    """JSON could not be parsed even after all repair heuristics."""

    def __init__(self, message: str, context: str = "", position: int | None = None, diagnostics: dict | None = None):
        self.context = context
        self.position = position
        self.diagnostics = diagnostics or {}
        where = f" in {context}" if context else ""
        at = f" at position {position}" if position is not None else ""
        super().__init__(f"JSON parse error{where}{at}: {message}")


# =============================================================================
# Sanitizing
# =============================================================================


def _extract_payload(text: str) -> str:
    """Pull the JSON document out of fences or surrounding prose.

    Fenced content runs from the first fence to the last one, so code
    fences inside string values stay intact.
    """
    text = text.strip()
    if text[:1] not in ("{", "[") and "```" in text:
        body = text[text.find("```") + 3 :]
        body = _FENCE_LANG.sub("", body, count=1)
        end = body.rfind("```")
        text = (body[:end] if end >= 0 else body).strip()

    if text[:1] in ("{", "["):
        return text

    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        return text

    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    return text[start : end + 1] if end > start else text[start:]


def escape_unescaped_whitespace(text: str) -> str:
    """Escape raw newlines, carriage returns and tabs inside strings."""
    out: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == "\\":
            out.append(char)
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if in_string and char == "\n":
            out.append("\\n")
        elif in_string and char == "\r":
            out.append("\\r")
        elif in_string and char == "\t":
            out.append("\\t")
        else:
            out.append(char)

    return "".join(out)


def escape_unescaped_quotes(text: str) -> str:
    """Escape double quotes that sit inside string content.

    A quote inside a string only closes it when the next non-whitespace
    character is structural (, } ] :) or the end of input. Otherwise it is
    treated as content and escaped. Valid JSON passes through unchanged.
    """
    out: list[str] = []
    in_string = False
    escaped = False
    length = len(text)
    i = 0

    while i < length:
        char = text[i]

        if escaped:
            out.append(char)
            escaped = False
        elif char == "\\":
            out.append(char)
            escaped = True
        elif char == '"':
            if not in_string:
                in_string = True
                out.append(char)
            else:
                j = i + 1
                while j < length and text[j].isspace():
                    j += 1
                next_char = text[j] if j < length else None
                if next_char is None or next_char in STRUCTURAL_AFTER_STRING:
                    in_string = False
                    out.append(char)
                else:
                    out.append('\\"')
        else:
            out.append(char)
        i += 1

    return "".join(out)


def escape_invalid_backslashes(text: str) -> str:
    """Double backslashes inside strings that don't start a valid escape."""
    out: list[str] = []
    in_string = False
    escaped = False
    length = len(text)

    for i, char in enumerate(text):
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if char == "\\":
            next_char = text[i + 1] if i + 1 < length else ""
            if in_string and next_char not in VALID_ESCAPES:
                out.append("\\\\")
                continue
            out.append(char)
            escaped = True
            continue
        out.append(char)

    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """Drop commas directly before a closing brace or bracket."""
    return _TRAILING_COMMA.sub("", text)


def sanitize_and_fix_json(content: str) -> str:
    """Clean up raw LLM output so it has the best chance to parse.

    Steps: strip reasoning blocks, control characters and BOM; extract the
    JSON from markdown fences or surrounding prose; normalize line endings;
    escape raw whitespace and stray quotes inside strings.
    """
    fixed = strip_think(content)
    fixed = fixed.replace("\ufeff", "")
    fixed = _CONTROL_CHARS.sub("", fixed)
    fixed = fixed.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
    fixed = _extract_payload(fixed)
    fixed = fixed.replace("\r\n", "\n").strip()
    fixed = escape_unescaped_whitespace(fixed)
    fixed = escape_unescaped_quotes(fixed)
    return fixed


# =============================================================================
# Truncation repair
# =============================================================================


def _closers(stack: list[str]) -> str:
    return "".join("}" if opener == "{" else "]" for opener in reversed(stack))


def close_truncated_json(text: str) -> str | None:
    """Best-effort completion of a document cut off mid-way.

    First tries closing the open string and brackets in place. If that
    doesn't parse, backs off to each earlier top-level-or-nested comma and
    closes from there, dropping the incomplete trailing element.

    Returns:
        A parseable string, or None if no candidate parsed
    """
    stack: list[str] = []
    cuts: list[tuple[int, list[str]]] = []
    in_string = False
    escaped = False

    for i, char in enumerate(text):
        if escaped:
            escaped = False
            continue
        if in_string:
            if char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append(char)
        elif char in "}]":
            if stack:
                stack.pop()
        elif char == ",":
            cuts.append((i, list(stack)))

    candidate = text.rstrip()
    if escaped:
        candidate = candidate[:-1]
    if in_string:
        candidate += '"'
    candidate = candidate.rstrip()
    if candidate.endswith(","):
        candidate = candidate[:-1]
    elif candidate.endswith(":"):
        candidate += " null"
    candidate += _closers(stack)

    if _parses(candidate):
        return candidate

    for index, stack_at_cut in reversed(cuts[-MAX_TRUNCATION_CUTS:]):
        candidate = text[:index] + _closers(stack_at_cut)
        if _parses(candidate):
            return candidate

    return None


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


# =============================================================================
# Parsing
# =============================================================================


def analyze_json_string(text: str) -> dict[str, Any]:
    """Bracket, quote and control-character counts for debugging logs."""
    unescaped_quotes = 0
    escaped_quotes = 0
    backslashes = 0
    control_chars = 0
    counts = {"{": 0, "}": 0, "[": 0, "]": 0}
    escaped = False

    for char in text:
        code = ord(char)
        if char == '"':
            if escaped:
                escaped_quotes += 1
            else:
                unescaped_quotes += 1
        if char == "\\":
            backslashes += 1
        if char in counts:
            counts[char] += 1
        if code < 32 or 127 <= code <= 159:
            control_chars += 1

        escaped = char == "\\" and not escaped

    return {
        "length": len(text),
        "unescaped_quotes": unescaped_quotes,
        "escaped_quotes": escaped_quotes,
        "backslashes": backslashes,
        "open_curly": counts["{"],
        "close_curly": counts["}"],
        "open_square": counts["["],
        "close_square": counts["]"],
        "control_chars": control_chars,
        "quotes_balanced": unescaped_quotes % 2 == 0,
    }


def parse_json(text: str, context: str = "") -> Any:
    """Parse JSON, escalating through repair heuristics on failure.

    Order: direct parse, stray-quote fix, invalid-backslash fix, trailing
    comma removal, truncation repair. Each step builds on the previous one.

    Args:
        text: JSON text (ideally already passed through sanitize_and_fix_json)
        context: Label used in logs and the error message

    Raises:
        JSONRepairError: If every heuristic fails
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        original_error = exc

    diagnostics = analyze_json_string(text)
    logger.warning(
        "json_parse_failed",
        context=context,
        error=original_error.msg,
        position=original_error.pos,
        snippet=text[max(0, original_error.pos - 80) : original_error.pos + 80],
        **diagnostics,
    )

    fixed = text
    for step_name, step in (
        ("quotes", escape_unescaped_quotes),
        ("backslashes", escape_invalid_backslashes),
        ("trailing_commas", remove_trailing_commas),
    ):
        fixed = step(fixed)
        try:
            parsed = json.loads(fixed)
        except json.JSONDecodeError:
            continue
        logger.info("json_repaired", context=context, step=step_name)
        return parsed

    completed = close_truncated_json(fixed)
    if completed is not None:
        logger.info("json_repaired", context=context, step="truncation")
        return json.loads(completed)

    raise JSONRepairError(
        original_error.msg,
        context=context,
        position=original_error.pos,
        diagnostics=diagnostics,
    )


def loads_llm_json(raw: str, context: str = "") -> Any:
    """Sanitize then parse raw LLM output."""
    if not raw or not raw.strip():
        raise JSONRepairError("empty response", context=context)
    return parse_json(sanitize_and_fix_json(raw), context=context)
