"""Formula analysis: format defaults, linting, heuristics and enrichment."""

from modeldoc.analysis.formats import default_format_string, infer_format_string, infer_table_role
from modeldoc.analysis.lint import LintFinding, lint_dax, summarize_findings
from modeldoc.analysis.heuristics import (
    MeasureDescription,
    describe,
    describe_measure,
    estimate_complexity,
    infer_kind,
)
from modeldoc.analysis.enricher import EnrichedMeasure, enrich_measures

__all__ = [
    "EnrichedMeasure",
    "LintFinding",
    "MeasureDescription",
    "default_format_string",
    "describe",
    "describe_measure",
    "enrich_measures",
    "estimate_complexity",
    "infer_format_string",
    "infer_kind",
    "infer_table_role",
    "lint_dax",
    "summarize_findings",
]
