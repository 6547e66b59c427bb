"""Priority merge helpers.

Every enriched field in the report is resolved with the same rule: walk the
candidate values in priority order and take the first one that is present.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

_LIST_SPLIT = re.compile(r"\s*[,;|]\s*|\n+")


def is_present(value: Any) -> bool:
    """Return True if a value carries information.

    None, blank strings and empty collections are not present. Zero and False are.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, Mapping | list | tuple | set | frozenset):
        return len(value) > 0
    return True


def coalesce(*candidates: Any, default: Any = None) -> Any:
    """Return the first present candidate, or ``default``.

    Example:
        >>> coalesce("", None, "heuristic", "raw")
        'heuristic'
    """
    for candidate in candidates:
        if is_present(candidate):
            return candidate
    return default


def split_list(value: Any) -> list[str]:
    """Coerce a string or sequence into a list of non-empty strings.

    Strings are split on commas, semicolons, pipes and newlines. Mappings
    contribute their values and nested sequences are flattened, so grouped
    output such as ``{"primary": ["A"], "support": "B, C"}`` gives ``["A", "B", "C"]``.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [part for part in (p.strip() for p in _LIST_SPLIT.split(value)) if part]
    if isinstance(value, Mapping):
        return [item for v in value.values() for item in split_list(v)]
    if isinstance(value, Iterable):
        out: list[str] = []
        for item in value:
            if isinstance(item, Mapping) or (
                isinstance(item, Iterable) and not isinstance(item, str)
            ):
                out.extend(split_list(item))
            elif is_present(item):
                out.append(str(item).strip())
        return out
    return [str(value).strip()] if is_present(value) else []


def dedupe(values: Iterable[str], *, case_insensitive: bool = False) -> list[str]:
    """De-duplicate strings, keeping first occurrence order."""
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        key = value.lower() if case_insensitive else value
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
    return out


def pick(data: Any, *keys: str, default: Any = None) -> Any:
    """Return the first present value under any of ``keys``.

    Generated payloads name the same field in snake_case or camelCase; this
    reads either without caring which.
    """
    if not isinstance(data, Mapping):
        return default
    for key in keys:
        if key in data and is_present(data[key]):
            return data[key]
    return default


def as_text(value: Any, default: str = "") -> str:
    """Coerce a generated scalar to stripped text; structures become ``default``."""
    if value is None or isinstance(value, Mapping | list | tuple):
        return default
    text = str(value).strip()
    return text or default


def as_float(value: Any, default: float) -> float:
    """Coerce a generated number; anything unparseable or non-finite becomes ``default``."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return number


def as_int(value: Any, default: int = 0) -> int:
    number = as_float(value, float("nan"))
    return default if number != number else int(number)


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def as_records(value: Any) -> list[Mapping[str, Any]]:
    """Keep only the mapping entries of a generated list."""
    if not isinstance(value, list | tuple):
        return []
    return [item for item in value if isinstance(item, Mapping)]
