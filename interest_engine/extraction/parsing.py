"""Parsing and cleanup of model output into theme lists.

Models routinely wrap JSON in markdown fences, leave raw newlines inside
strings or add a trailing comma. ``parse_theme_response`` repairs those
in stages and only gives up when nothing array-like is left.
"""

import json
import logging
import re
from collections.abc import Iterable

from interest_engine.scheduler.errors import MalformedResponseError

logger = logging.getLogger(__name__)

GENERIC_THEME_WORDS = frozenset(
    {
        "статья",
        "текст",
        "информация",
        "контент",
        "материал",
        "содержание",
        "article",
        "text",
        "information",
    }
)

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"\s*```$")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_ARRAY_RE = re.compile(r"\[([\s\S]*?)\]")
_QUOTED_RE = re.compile(r'"([^"]+)"')

_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}


def escape_control_chars(raw: str) -> str:
    """Escape raw control characters that appear inside JSON strings."""
    out: list[str] = []
    in_string = False
    escaped = False
    for char in raw:
        if escaped:
            out.append(char)
            escaped = False
            continue
        if char == "\\":
            escaped = True
            out.append(char)
            continue
        if char == '"':
            in_string = not in_string
            out.append(char)
            continue
        if in_string and ord(char) < 0x20:
            out.append(_CONTROL_ESCAPES.get(char, f"\\u{ord(char):04x}"))
        else:
            out.append(char)
    return "".join(out)


def strip_fences(raw: str) -> str:
    text = raw.strip()
    text = _FENCE_START_RE.sub("", text)
    text = _FENCE_END_RE.sub("", text)
    return text.strip()


def parse_theme_response(raw: str | None) -> list:
    """Turn raw model output into a Python list.

    Raises:
        MalformedResponseError: No list could be recovered.
    """
    if not raw or not raw.strip():
        raise MalformedResponseError("Empty response")

    text = strip_fences(raw)
    first, last = text.find("["), text.rfind("]")
    if first != -1 and last > first:
        text = text[first : last + 1]
    text = escape_control_chars(text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as first_error:
        try:
            data = json.loads(_TRAILING_COMMA_RE.sub(r"\1", text))
        except json.JSONDecodeError:
            match = _ARRAY_RE.search(text)
            quoted = _QUOTED_RE.findall(match.group(1)) if match else []
            if not quoted:
                raise MalformedResponseError(
                    f"Could not parse theme response: {first_error}"
                ) from first_error
            logger.info("Recovered %d themes with regex fallback", len(quoted))
            return quoted

    if not isinstance(data, list):
        raise MalformedResponseError(f"Expected a JSON array, got {type(data).__name__}")
    return data


def clean_themes(
    themes: Iterable[object],
    *,
    max_words: int = 3,
    max_chars: int = 50,
    max_themes: int = 10,
) -> list[str]:
    """Apply theme shape rules.

    Non-strings and blanks are dropped, whitespace collapsed, themes with
    more than ``max_words`` words cut down, over-long themes dropped, and
    themes containing a generic word such as "article" dropped. At most
    ``max_themes`` are kept.
    """
    cleaned: list[str] = []
    for theme in themes:
        if not isinstance(theme, str):
            continue
        words = theme.split()
        if not words:
            continue
        if len(words) > max_words:
            logger.debug("Theme %r has %d words, truncating", theme, len(words))
            words = words[:max_words]
        label = " ".join(words)
        if len(label) > max_chars:
            continue
        if any(word.lower() in GENERIC_THEME_WORDS for word in words):
            continue
        cleaned.append(label)
        if len(cleaned) >= max_themes:
            break
    return cleaned
