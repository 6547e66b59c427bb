"""DAX pattern linter.

Six independent rules, each firing at most once per formula. The rule
predicates are shared with the heuristic describer so that a risk flagged
there always has a matching finding here.
"""

from __future__ import annotations

import re

from pydantic import BaseModel

from modeldoc.core.models import Severity

_STRING_LITERAL = re.compile(r'"(?:[^"]|"")*"')
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"(?://|--)[^\n]*")
_BRACKETED = re.compile(r"\[[^\]]*\]")
_QUOTED_NAME = re.compile(r"'(?:[^']|'')*'")

_DIVIDE_CALL = re.compile(r"\bDIVIDE\s*\(", re.IGNORECASE)
_AVERAGEX_OVER_MEASURE = re.compile(r"\bAVERAGEX\s*\([^,]+,\s*\[[^\]]+\]\s*\)", re.IGNORECASE)
_COUNTAX_TRUE = re.compile(r"\bCOUNTAX\s*\([^,]+,\s*TRUE\s*(?:\(\s*\))?\s*\)", re.IGNORECASE)
_TIME_INTELLIGENCE = re.compile(
    r"\b(DATESINPERIOD|SAMEPERIODLASTYEAR|DATEADD|PARALLELPERIOD)\b", re.IGNORECASE
)
_MAX_CALL = re.compile(r"\bMAX\s*\(([^)]*)\)", re.IGNORECASE)
_CALENDAR_REFERENCE = re.compile(r"date|calendar", re.IGNORECASE)
_RELATED_CALL = re.compile(r"\bRELATED\s*\(", re.IGNORECASE)
_IF_CALL = re.compile(r"\bIF\s*\(", re.IGNORECASE)
_GUARDS = re.compile(r"\b(ISBLANK|ISNUMBER|VALUE|SELECTEDVALUE|HASONEVALUE)\b", re.IGNORECASE)


class LintFinding(BaseModel):
    """A single rule hit."""

    rule_id: str
    severity: Severity
    message: str
    example: str | None = None


def strip_literals(expression: str) -> str:
    """Blank out string literals, comments, bracketed names and quoted table names."""
    text = _STRING_LITERAL.sub('""', expression)
    text = _BLOCK_COMMENT.sub(" ", text)
    text = _LINE_COMMENT.sub(" ", text)
    text = _BRACKETED.sub("[]", text)
    return _QUOTED_NAME.sub("''", text)


def has_unsafe_division(expression: str) -> bool:
    """True when a raw ``/`` operator appears and DIVIDE() is not used."""
    code = strip_literals(expression)
    return "/" in code and not _DIVIDE_CALL.search(code)


def has_averagex_over_measure(expression: str) -> bool:
    return bool(_AVERAGEX_OVER_MEASURE.search(expression))


def has_countax_true(expression: str) -> bool:
    return bool(_COUNTAX_TRUE.search(expression))


def has_max_anchor(expression: str) -> bool:
    """Time intelligence anchored on MAX() of something other than a date/calendar column."""
    if not _TIME_INTELLIGENCE.search(expression):
        return False
    return any(
        not _CALENDAR_REFERENCE.search(match.group(1))
        for match in _MAX_CALL.finditer(expression)
    )


def has_related_in_measure(expression: str) -> bool:
    return bool(_RELATED_CALL.search(expression))


def has_unguarded_if(expression: str) -> bool:
    return bool(_IF_CALL.search(expression)) and not _GUARDS.search(expression)


def lint_dax(expression: str | None) -> list[LintFinding]:
    """Lint one formula.

    Never raises; an empty or whitespace-only formula has no findings.

    Example:
        >>> [f.rule_id for f in lint_dax("[Profit]/[Revenue]")]
        ['calc.divide-operator']
    """
    e = (expression or "").strip()
    if not e:
        return []

    findings: list[LintFinding] = []

    if has_unsafe_division(e):
        findings.append(
            LintFinding(
                rule_id="calc.divide-operator",
                severity=Severity.WARN,
                message="Division operator detected without DIVIDE(); verify divide-by-zero behavior.",
                example="DIVIDE([Numerator], [Denominator])",
            )
        )

    if has_averagex_over_measure(e):
        findings.append(
            LintFinding(
                rule_id="iter.avgx-measure",
                severity=Severity.INFO,
                message=(
                    "AVERAGEX over a measure may average computed values; "
                    "confirm the intent vs averaging a base column."
                ),
            )
        )

    if has_countax_true(e):
        findings.append(
            LintFinding(
                rule_id="iter.countax-true",
                severity=Severity.INFO,
                message="COUNTAX with TRUE() counts all rows; COUNTROWS() is typically clearer and faster.",
                example="COUNTROWS( Table )",
            )
        )

    if has_max_anchor(e):
        findings.append(
            LintFinding(
                rule_id="time.max-anchor",
                severity=Severity.INFO,
                message=(
                    "Time intelligence anchored on MAX() can drift with filters; "
                    "verify intended end-of-period anchor."
                ),
            )
        )

    if has_related_in_measure(e):
        findings.append(
            LintFinding(
                rule_id="model.related-in-measure",
                severity=Severity.INFO,
                message="RELATED() in measures can be fragile; verify relationship direction and filter context.",
            )
        )

    if has_unguarded_if(e):
        findings.append(
            LintFinding(
                rule_id="logic.if-no-guards",
                severity=Severity.INFO,
                message="IF() without guards (HASONEVALUE/ISBLANK/etc.) may mis-handle blanks or multi-selects.",
            )
        )

    return findings


def summarize_findings(findings: list[LintFinding]) -> dict[str, int]:
    """Count findings per severity."""
    summary = {"errors": 0, "warnings": 0, "infos": 0}
    for finding in findings:
        if finding.severity == Severity.ERROR:
            summary["errors"] += 1
        elif finding.severity == Severity.WARN:
            summary["warnings"] += 1
        else:
            summary["infos"] += 1
    return summary
