"""Format string and table role defaults inferred from names and formulas."""

from __future__ import annotations

import re

from modeldoc.core.models import TableRole

PERCENT_FORMAT = "0.0%"
DECIMAL_FORMAT = "0.0"
INTEGER_FORMAT = "#,##0"

_PERCENT_NAME = re.compile(r"%|percent|rate", re.IGNORECASE)
_TIMES_100 = re.compile(r"\*\s*100\b")
_DIVIDE_TIMES_100 = re.compile(r"divide\s*\([^,]+,[^)]+\)\s*\*\s*100\b", re.IGNORECASE)
_AVERAGE_NAME = re.compile(r"\b(avg|average|mean)\b", re.IGNORECASE)
_AVERAGE_CALL = re.compile(r"\baverage(x)?\s*\(", re.IGNORECASE)
_COUNT_NAME = re.compile(r"\b(count|number|qty|quantity)\b", re.IGNORECASE)
_COUNT_CALL = re.compile(r"\bcount(a|ax|rows|x)?\s*\(", re.IGNORECASE)

# Enricher variant: stays conservative and does not guess number formats.
_ENRICH_PERCENT_NAME = re.compile(r"%|pct|percent|rate", re.IGNORECASE)
_DIVIDE_CALL = re.compile(r"\bDIVIDE\s*\(", re.IGNORECASE)
_HUNDRED = re.compile(r"\b100\b")
_ENRICH_AVERAGE_NAME = re.compile(r"avg|average", re.IGNORECASE)


def infer_format_string(name: str, expression: str | None = None) -> str:
    """Infer a display format for a measure with no format string.

    Args:
        name: Measure name
        expression: Measure formula

    Returns:
        A format string; falls back to a thousands-separated integer
    """
    expr = expression or ""
    if (
        _PERCENT_NAME.search(name or "")
        or _DIVIDE_TIMES_100.search(expr)
        or _TIMES_100.search(expr)
    ):
        return PERCENT_FORMAT
    if _AVERAGE_NAME.search(name or "") or _AVERAGE_CALL.search(expr):
        return DECIMAL_FORMAT
    if _COUNT_NAME.search(name or "") or _COUNT_CALL.search(expr):
        return INTEGER_FORMAT
    return INTEGER_FORMAT


def default_format_string(name: str, expression: str | None = None) -> str | None:
    """Format used by the enricher when nothing else is known.

    Only percent and average measures get a default; everything else stays unset.
    """
    expr = expression or ""
    if _ENRICH_PERCENT_NAME.search(name or "") or (
        _DIVIDE_CALL.search(expr) and _HUNDRED.search(expr)
    ):
        return PERCENT_FORMAT
    if _ENRICH_AVERAGE_NAME.search(name or ""):
        return DECIMAL_FORMAT
    return None


def infer_table_role(row_count: int, threshold: int = 10_000) -> TableRole:
    """Classify a table as fact or dimension by row count alone."""
    return TableRole.FACT if row_count > threshold else TableRole.DIMENSION
