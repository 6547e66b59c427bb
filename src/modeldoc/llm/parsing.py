"""Tolerant JSON extraction from generated text.

Generated output is often valid JSON wrapped in prose or code fences. The
parser tries an ordered list of pure strategies and stops at the first one
that yields a value of the expected type; when none does, the caller's default
is returned and the outcome says so.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

_FENCE_OPEN = re.compile(r"^\s*```(?:json|JSON)?\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")
_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}


class ParseOutcome(BaseModel):
    """Parsed value plus which strategy produced it."""

    value: Any = None
    strategy: str = "default"

    @property
    def used_default(self) -> bool:
        return self.strategy == "default"


def _loads(text: str) -> Any | None:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


def parse_strict(text: str) -> Any | None:
    return _loads(text.strip())


def parse_unfenced(text: str) -> Any | None:
    """Strip Markdown code fences, or take the contents of the first fenced block."""
    stripped = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text.strip()))
    value = _loads(stripped)
    if value is not None:
        return value
    block = _FENCED_BLOCK.search(text)
    return _loads(block.group(1)) if block else None


def top_level_spans(text: str) -> list[str]:
    """Return every balanced top-level ``{...}`` or ``[...]`` span, in order.

    Brackets inside JSON string literals are ignored.
    """
    spans: list[str] = []
    stack: list[str] = []
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and stack:
            in_string = True
        elif ch in _CLOSERS:
            if not stack:
                start = i
            stack.append(_CLOSERS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
            if not stack:
                spans.append(text[start : i + 1])
        elif ch in "}]" and stack:
            # Mismatched closer: abandon the current span.
            stack.clear()
    return spans


def parse_last_bracketed(text: str) -> Any | None:
    """Parse the last top-level bracketed span that is valid JSON."""
    for span in reversed(top_level_spans(text)):
        value = _loads(span)
        if value is not None:
            return value
    return None


STRATEGIES: tuple[tuple[str, Callable[[str], Any | None]], ...] = (
    ("strict", parse_strict),
    ("unfenced", parse_unfenced),
    ("bracketed", parse_last_bracketed),
)


def parse_json(
    text: str | None,
    default: Any = None,
    expected: type | tuple[type, ...] | None = None,
) -> ParseOutcome:
    """Parse generated text tolerantly.

    Args:
        text: Raw generated text
        default: Value returned when every strategy fails
        expected: Required type of the parsed value (e.g. ``dict``); defaults to the type of ``default``

    Returns:
        ParseOutcome with the value and the strategy name ("default" on total failure)

    Example:
        >>> parse_json('Here you go: {"a": 1}', default={}).value
        {'a': 1}
    """
    if expected is None and default is not None:
        expected = type(default)
    if text and text.strip():
        for name, strategy in STRATEGIES:
            value = strategy(text)
            if value is not None and (expected is None or isinstance(value, expected)):
                return ParseOutcome(value=value, strategy=name)
    return ParseOutcome(value=default, strategy="default")
