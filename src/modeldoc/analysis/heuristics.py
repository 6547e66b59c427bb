"""Deterministic measure descriptions derived from name and formula text.

This is the fallback for every generation stage, so nothing in here may raise
for any input string.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field

from modeldoc.analysis import lint
from modeldoc.core.models import Complexity, MeasureKind
from modeldoc.model.entities import Measure

_PERCENT_NAME = re.compile(r"%|pct|percent", re.IGNORECASE)
_DIVIDE_CALL = re.compile(r"\bDIVIDE\s*\(", re.IGNORECASE)
_HUNDRED = re.compile(r"\b100\b")
_AVERAGE_CALL = re.compile(r"\bAVERAGE[AX]?\s*\(", re.IGNORECASE)
_AVG_NAME = re.compile(r"\bavg\b", re.IGNORECASE)
_COUNT_CALL = re.compile(
    r"\b(COUNT|COUNTA|COUNTAX|COUNTX|COUNTROWS|DISTINCTCOUNT)\s*\(", re.IGNORECASE
)
_COUNT_NAME = re.compile(r"\bcount\b", re.IGNORECASE)
_SUM_CALL = re.compile(r"\bSUMX?\s*\(", re.IGNORECASE)
_SUM_NAME = re.compile(r"\b(total|sum)\b", re.IGNORECASE)
_TIME_INTELLIGENCE = re.compile(
    r"\b(DATESINPERIOD|SAMEPERIODLASTYEAR|DATEADD|PARALLELPERIOD|"
    r"TOTALYTD|TOTALMTD|TOTALQTD|DATESYTD|DATESMTD|DATESQTD)\b",
    re.IGNORECASE,
)

_ROLLING_WINDOW = re.compile(
    r"DATESINPERIOD\s*\([^,]+,\s*[^,]+,\s*-\s*(\d+)\s*,\s*(DAY|WEEK|MONTH|QUARTER|YEAR)\s*\)",
    re.IGNORECASE,
)
_PRIOR_PERIOD = re.compile(r"DATEADD\s*\([^,]+,\s*-1\s*,\s*(YEAR|MONTH|WEEK)\s*\)", re.IGNORECASE)

_COLUMN_REFERENCE = re.compile(r"(?:'([^']+)'|([A-Za-z0-9_]+))\[([^\]]+)\]")
_BRACKET_REFERENCE = re.compile(r"\[(?!\s*Measures?\s*\])([^\]]+)\]")

_ADVANCED_FUNCTIONS = re.compile(
    r"\b(CALCULATE|SUMX|AVERAGEX|FILTER|ADDCOLUMNS|SUMMARIZE|TREATAS|VAR|RETURN|RANKX)\b",
    re.IGNORECASE,
)

_PURPOSE = {
    MeasureKind.SUM: "{title}{window} totals the underlying numeric values for performance tracking.",
    MeasureKind.COUNT: "{title}{window} counts records to show activity or volume.",
    MeasureKind.AVG: "{title}{window} highlights typical performance by averaging underlying values.",
    MeasureKind.PERCENT: "{title}{window} expresses performance as a percentage for easy comparison.",
    MeasureKind.RATIO: "{title}{window} compares two quantities to reveal efficiency or conversion.",
    MeasureKind.TIME_INTEL: "{title}{window} applies time-intelligence to compare or roll up periods.",
    MeasureKind.WINDOWED: "{title}{window} evaluates performance over a rolling window.",
    MeasureKind.OTHER: "{title}{window} summarizes a key business signal from the model.",
}

_WHEN_TO_USE = {
    MeasureKind.SUM: "Use for totals{window}, target progress, and period close reviews.",
    MeasureKind.COUNT: "Use to track activity volume{window}, funnel counts, and data completeness.",
    MeasureKind.AVG: "Use to monitor average performance{window} and detect outliers.",
    MeasureKind.PERCENT: "Use for goal attainment{window}, conversion, and benchmark comparisons.",
    MeasureKind.RATIO: "Use to compare effectiveness{window} across segments or time.",
    MeasureKind.TIME_INTEL: "Use for YoY/MoM trends, seasonality, and rolling period analysis.",
    MeasureKind.WINDOWED: "Use for short-term trend monitoring and recent momentum checks.",
    MeasureKind.OTHER: "Use when a concise business signal is needed across time or segments.",
}

_SUCCESS_INDICATORS = {
    MeasureKind.PERCENT: ["Consistently above target threshold", "Stable or improving trend"],
    MeasureKind.RATIO: ["Improving efficiency over time", "Better than peer segments"],
    MeasureKind.AVG: ["Stable variance", "Within expected control limits"],
    MeasureKind.COUNT: ["Increasing activity when desired", "No unexplained drops"],
    MeasureKind.SUM: ["On plan vs goal", "Healthy growth trajectory"],
}
_DEFAULT_SUCCESS_INDICATORS = ["Stable trend", "Aligned with business expectations"]


class MeasureDescription(BaseModel):
    """Heuristic documentation for one measure."""

    name: str
    kind: MeasureKind = MeasureKind.OTHER
    window: str | None = None
    purpose: str = ""
    when_to_use: str = ""
    success_indicators: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)


def normalize_title(name: str) -> str:
    """Title from typical measure names: ``Total_Trips``, ``tripsPerBike`` -> ``Trips Per Bike``."""
    text = re.sub(r"[_\-]+", " ", name or "")
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text).strip()
    return text[:1].upper() + text[1:]


def extract_window(expression: str | None) -> str | None:
    """Recognize a rolling or period-over-period window, e.g. ``Last 12 Months``."""
    e = expression or ""
    rolling = _ROLLING_WINDOW.search(e)
    if rolling:
        count = int(rolling.group(1))
        unit = rolling.group(2).capitalize()
        return f"Last {count} {unit}{'s' if count > 1 else ''}"
    if re.search(r"SAMEPERIODLASTYEAR", e, re.IGNORECASE):
        return "Year over Year"
    prior = _PRIOR_PERIOD.search(e)
    if prior:
        return f"{prior.group(1).capitalize()} over {prior.group(1).capitalize()}"
    return None


def infer_kind(name: str, expression: str | None = None) -> MeasureKind:
    """Classify a measure; the first matching rule wins."""
    n = name or ""
    e = expression or ""
    if _PERCENT_NAME.search(n) or (_DIVIDE_CALL.search(e) and _HUNDRED.search(e)):
        return MeasureKind.PERCENT
    if _DIVIDE_CALL.search(e):
        return MeasureKind.RATIO
    if _AVERAGE_CALL.search(e) or _AVG_NAME.search(n):
        return MeasureKind.AVG
    if _COUNT_CALL.search(e) or _COUNT_NAME.search(n):
        return MeasureKind.COUNT
    if _SUM_CALL.search(e) or _SUM_NAME.search(n):
        return MeasureKind.SUM
    if _TIME_INTELLIGENCE.search(e):
        window = extract_window(e)
        if window and window.startswith("Last "):
            return MeasureKind.WINDOWED
        return MeasureKind.TIME_INTEL
    return MeasureKind.OTHER


def extract_dependencies(expression: str | None) -> list[str]:
    """Extract ``Table[Column]`` references and standalone ``[Measure]`` references."""
    e = expression or ""
    found: list[str] = []
    for match in _COLUMN_REFERENCE.finditer(e):
        table = match.group(1) or match.group(2)
        found.append(f"{table}[{match.group(3)}]")
    for match in _BRACKET_REFERENCE.finditer(e):
        found.append(f"[{match.group(1)}]")
    return list(dict.fromkeys(found))


def detect_risks(expression: str | None) -> list[str]:
    """Generic risk notes; each rule is independent."""
    e = expression or ""
    risks: list[str] = []
    if lint.has_unsafe_division(e):
        risks.append("Division operator used without DIVIDE(); may cause divide-by-zero errors.")
    if lint.has_averagex_over_measure(e):
        risks.append(
            "AVERAGEX over a measure may yield unintended results; ensure row-level expression."
        )
    if lint.has_countax_true(e):
        risks.append("COUNTAX with TRUE() counts all rows; COUNTROWS() may be clearer and faster.")
    if lint.has_max_anchor(e):
        risks.append("Time-intel anchored on MAX() can drift; confirm intended end-of-period anchor.")
    if lint.has_related_in_measure(e):
        risks.append(
            "RELATED() inside measures can be fragile; verify relationship direction and context."
        )
    if lint.has_unguarded_if(e):
        risks.append("IF() without guard conditions could mis-handle blanks or multi-selects.")
    return risks


def estimate_complexity(expression: str | None) -> Complexity:
    """Rough complexity from the number of iterator/context functions used."""
    e = expression or ""
    advanced = len(_ADVANCED_FUNCTIONS.findall(e))
    if advanced >= 3 or len(e) > 400:
        return Complexity.COMPLEX
    if advanced >= 1 or len(e) > 120:
        return Complexity.MEDIUM
    return Complexity.SIMPLE


def is_complex(expression: str | None) -> bool:
    return bool(_ADVANCED_FUNCTIONS.search(expression or ""))


def generate_purpose(name: str, kind: MeasureKind, window: str | None = None) -> str:
    return _PURPOSE[kind].format(
        title=normalize_title(name), window=f" ({window})" if window else ""
    )


def generate_when_to_use(kind: MeasureKind, window: str | None = None) -> str:
    return _WHEN_TO_USE[kind].format(window=f" over {window.lower()}" if window else "")


def generate_success_indicators(kind: MeasureKind) -> list[str]:
    return list(_SUCCESS_INDICATORS.get(kind, _DEFAULT_SUCCESS_INDICATORS))


def describe_measure(name: str, expression: str | None = None) -> MeasureDescription:
    """Describe a measure from its name and formula alone.

    Args:
        name: Measure name
        expression: Formula text; may be empty

    Returns:
        MeasureDescription, always populated
    """
    kind = infer_kind(name, expression)
    window = extract_window(expression)
    return MeasureDescription(
        name=name or "",
        kind=kind,
        window=window,
        purpose=generate_purpose(name, kind, window),
        when_to_use=generate_when_to_use(kind, window),
        success_indicators=generate_success_indicators(kind),
        risks=detect_risks(expression),
        dependencies=extract_dependencies(expression),
    )


def describe(measure: Measure) -> MeasureDescription:
    """Describe a normalized measure."""
    return describe_measure(measure.name, measure.expression)
