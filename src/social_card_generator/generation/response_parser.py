"""Extract JSON objects from free-form LLM output.

Models wrap their JSON in markdown fences, add chatter around it, and, most
often, leave raw newlines and tabs inside the HTML string. Parsing is an
ordered chain of strategies, each more aggressive than the last. Each
strategy takes the candidate JSON text and returns a dict or None; the first
dict wins.
"""

import json
import re
from collections.abc import Callable
from typing import Any

from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import FormatError
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)

ParseStrategy = Callable[[str], dict[str, Any] | None]

_LEADING_FENCE_RE = re.compile(r"\A\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```\s*\Z")
_HTML_FIELD_RE = re.compile(r'"html"\s*:\s*"')
_FIELD_TERMINATOR_RE = re.compile(r"\s*[,}]")
_VALID_ESCAPES = set('"\\/bfnrtu')
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def strip_code_fence(text: str) -> str:
    """Remove a markdown fence that wraps the whole reply.

    Fences elsewhere are left alone: they may sit inside a JSON string, such
    as a code sample in a design's HTML.
    """
    leading = _LEADING_FENCE_RE.match(text)
    if leading is None:
        return text
    trailing = _TRAILING_FENCE_RE.search(text, leading.end())
    if trailing is None:
        return text
    return text[leading.end() : trailing.start()]


def find_json_span(text: str) -> str | None:
    """Return text from the first ``{`` to the last ``}``, or None."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def find_balanced_object(text: str) -> str | None:
    """Return the first brace-balanced ``{...}`` span, string- and escape-aware."""
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _loads_object(text: str) -> dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        msg = f"Expected a JSON object, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _decode_string_body(raw: str) -> str:
    """Decode JSON escape sequences in a string body, tolerating raw controls."""
    try:
        decoded = json.loads(f'"{raw}"', strict=False)
    except json.JSONDecodeError:
        return raw
    return decoded if isinstance(decoded, str) else raw


# Tier 1


def parse_direct(text: str) -> dict[str, Any] | None:
    """Parse the first balanced object, then the widest ``{...}`` span."""
    candidates = []
    balanced = find_balanced_object(text)
    if balanced is not None:
        candidates.append(balanced)
    widest = find_json_span(text)
    if widest is not None and widest not in candidates:
        candidates.append(widest)

    for candidate in candidates:
        try:
            return _loads_object(candidate)
        except ValueError:
            continue
    return None


# Tier 2


def _escape_string_value(text: str, start: int) -> tuple[str, int] | None:
    """Re-escape one string value that begins at ``start``.

    The value ends at the first unescaped quote followed by ``,`` or ``}``.
    Raw control characters and quotes inside are escaped, as are backslashes
    that do not begin a valid JSON escape. Existing escapes are kept.

    Returns:
        (escaped body, index of the closing quote), or None if unterminated
    """
    out: list[str] = []
    i = start
    length = len(text)
    while i < length:
        char = text[i]
        if char == "\\":
            if i + 1 < length and text[i + 1] in _VALID_ESCAPES:
                out.append(text[i : i + 2])
                i += 2
                continue
            out.append("\\\\")
            i += 1
            continue
        if char == '"':
            if _FIELD_TERMINATOR_RE.match(text, i + 1):
                return "".join(out), i
            out.append('\\"')
        elif char in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[char])
        elif ord(char) < 0x20:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
        i += 1
    return None


def escape_html_fields(text: str) -> str:
    """Return ``text`` with every ``"html"`` string value re-escaped."""
    pieces: list[str] = []
    position = 0
    for match in _HTML_FIELD_RE.finditer(text):
        if match.start() < position:
            # Inside a value already rewritten
            continue
        value_start = match.end()
        escaped = _escape_string_value(text, value_start)
        if escaped is None:
            break
        body, closing_quote = escaped
        pieces.append(text[position:value_start])
        pieces.append(body)
        position = closing_quote
    pieces.append(text[position:])
    return "".join(pieces)


def parse_with_escaped_html(text: str) -> dict[str, Any] | None:
    """Escape raw characters inside html values, then parse directly."""
    repaired = escape_html_fields(text)
    if repaired == text:
        return None
    logger.debug(
        "json_html_fields_escaped",
        original_length=len(text),
        repaired_length=len(repaired),
    )
    try:
        return _loads_object(repaired)
    except ValueError:
        return parse_direct(repaired)


# Tier 3


def _simple_field(text: str, name: str) -> str | None:
    match = re.search(rf'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"', text)
    if match is None:
        return None
    return _decode_string_body(match.group(1))


def _scan_html_value(text: str) -> str:
    """Collect the html value up to its first unescaped quote."""
    match = _HTML_FIELD_RE.search(text)
    if match is None:
        return ""

    chars: list[str] = []
    escaped = False
    for char in text[match.end() :]:
        if escaped:
            chars.append(char)
            escaped = False
        elif char == "\\":
            chars.append(char)
            escaped = True
        elif char == '"':
            break
        else:
            chars.append(char)
    return _decode_string_body("".join(chars))


def parse_by_manual_extraction(text: str) -> dict[str, Any] | None:
    """Rebuild a minimal object from individually extracted fields.

    Only the first design survives: this is a best-effort single-design
    recovery for badly broken output.
    """
    title = _simple_field(text, "title")
    html = _scan_html_value(text)
    if title is not None and html.strip():
        logger.warning(
            "json_recovered_by_manual_extraction",
            recovered_designs=1,
            html_length=len(html),
        )
        return {
            "analysis": _simple_field(text, "analysis") or "",
            "designs": [{"title": title, "html": html}],
        }

    summary = _simple_field(text, "summary")
    if title and summary:
        logger.warning("json_recovered_by_manual_extraction", shape="summary")
        return {"title": title, "summary": summary}
    return None


STRATEGIES: tuple[ParseStrategy, ...] = (
    parse_direct,
    parse_with_escaped_html,
    parse_by_manual_extraction,
)


def extract_json_text(response: str) -> str:
    """Strip fences and chatter, leaving the candidate JSON text.

    Raises:
        FormatError: If the response holds no ``{...}`` span at all
    """
    span = find_json_span(strip_code_fence(response))
    if span is None:
        raise FormatError(
            "Invalid response format from LLM. Could not find JSON.",
            error_code=ErrorCode.FMT_NO_JSON.value,
            context={"response_preview": response[:200]},
        )
    return span


def parse_llm_json(
    response: str, strategies: tuple[ParseStrategy, ...] = STRATEGIES
) -> dict[str, Any]:
    """Parse the JSON object in an LLM response.

    Raises:
        FormatError: If no strategy recovers an object. The message carries
            the error from the direct parse attempt.
    """
    text = extract_json_text(response)

    for tier, strategy in enumerate(strategies, start=1):
        result = strategy(text)
        if result is not None:
            if tier > 1:
                logger.info("json_parse_recovered", tier=tier, strategy=strategy.__name__)
            return result
        logger.debug("json_parse_strategy_failed", tier=tier, strategy=strategy.__name__)

    try:
        _loads_object(text)
        first_error = "Unknown error"
    except ValueError as e:
        first_error = str(e)

    logger.error(
        "json_parse_failed",
        error=first_error,
        preview=text[:500],
    )
    raise FormatError(
        f"Failed to parse JSON response: {first_error}",
        error_code=ErrorCode.FMT_UNPARSEABLE.value,
        context={"response_length": len(response)},
    )
