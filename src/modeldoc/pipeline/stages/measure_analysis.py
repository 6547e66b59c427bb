"""Measure analysis stage.

One generation call per measure, all sharing the orchestrator's admission
limiter. Each prompt is scoped to the tables and columns the formula actually
references. Any measure whose call fails gets a heuristic stub, so the stage
always returns one analysis per measure.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping
from typing import Any

from modeldoc.analysis.heuristics import MeasureDescription, describe, estimate_complexity
from modeldoc.analysis.lint import LintFinding, lint_dax, summarize_findings
from modeldoc.core.logging import get_logger, record_measures_processed
from modeldoc.core.merge import as_records, as_text, coalesce, pick, split_list
from modeldoc.core.models import Complexity
from modeldoc.llm.client import LLMClient
from modeldoc.llm.parsing import parse_json
from modeldoc.model.entities import Measure
from modeldoc.pipeline.base import PipelineContext, StageResult
from modeldoc.pipeline.models import (
    MeasureAnalysis,
    MeasureAnalysisPayload,
    ScenarioCheck,
    SuggestedFix,
)
from modeldoc.pipeline.stages.base import FALLBACK_CONFIDENCE, BaseStage, clamp_confidence

logger = get_logger(__name__)

NO_MEASURES_REASON = "No measures found in input; DAX analysis skipped."
STUB_CONFIDENCE = 0.6
MAX_REFERENCED_COLUMNS = 50
MAX_REFERENCED_TABLES = 20
MAX_ANTI_PATTERN_SUMMARY = 100

COMPLEX_MEASURE = re.compile(
    r"\b(CALCULATE|SUMX|AVERAGEX|FILTER|ADDCOLUMNS|SUMMARIZE|TREATAS|VAR|RETURN|RANKX)\b",
    re.IGNORECASE,
)

LINT_CHECKLIST = [
    "Avoid HOUR(MAX(DateTime)); prefer row-level filters with FILTER(ALL(Table), HOUR(Table[DateTime]) IN ...).",
    "Prefer DIVIDE(n, d) over n/d when denominator might be 0.",
    "Ensure time intelligence uses a Calendar table (e.g. DATESINPERIOD(Calendar[Date], ...)).",
    "Flag ambiguous Boolean filters; scope by table to avoid context leakage.",
    "Prefer Date to Date relationships over DateTime to Date.",
]


def heuristic_stub(measure: Measure, heuristic: MeasureDescription, error: str) -> MeasureAnalysis:
    """Analysis built from heuristics alone when the call for a measure failed."""
    return MeasureAnalysis(
        measure=measure.name,
        purpose=heuristic.purpose,
        formula=measure.expression,
        dependencies=heuristic.dependencies,
        complexity=Complexity.MEDIUM,
        risks=[*heuristic.risks, f"LLM analysis unavailable: {error}"],
        confidence=STUB_CONFIDENCE,
        used_fallback=True,
    )


def _complexity(value: Any, expression: str) -> Complexity:
    try:
        return Complexity(as_text(value).lower())
    except ValueError:
        return estimate_complexity(expression)


def coerce_analysis(
    data: Mapping[str, Any], measure: Measure, heuristic: MeasureDescription, ceiling: float
) -> MeasureAnalysis:
    """Merge a generated analysis with heuristics for the fields it left empty."""
    fixes = [
        SuggestedFix(
            title=as_text(f.get("title")),
            rationale=as_text(f.get("rationale")),
            fixed_dax=as_text(pick(f, "fixed_dax", "fixedDax")),
        )
        for f in as_records(pick(data, "suggested_fixes", "suggestedFixes"))
        if as_text(f.get("title"))
    ]
    tests = [
        ScenarioCheck(scenario=as_text(t.get("scenario")), expectation=as_text(t.get("expectation")))
        for t in as_records(data.get("tests"))
        if as_text(t.get("scenario"))
    ]
    return MeasureAnalysis(
        # The input name is the join key; a renamed measure would orphan the analysis.
        measure=measure.name,
        purpose=coalesce(as_text(data.get("purpose")), heuristic.purpose, default=""),
        formula=measure.expression,
        dependencies=split_list(data.get("dependencies")) or heuristic.dependencies,
        complexity=_complexity(data.get("complexity"), measure.expression),
        risks=split_list(data.get("risks")) or heuristic.risks,
        anti_patterns=split_list(pick(data, "anti_patterns", "antiPatterns")),
        suggested_fixes=fixes,
        tests=tests,
        confidence=clamp_confidence(data.get("confidence"), ceiling),
    )


def _table_reference(name: str) -> re.Pattern[str]:
    # Quoted, or bare and not part of a longer identifier or a [Column] name.
    escaped = re.escape(name)
    return re.compile(rf"'{escaped}'|(?<![\w\[']){escaped}(?![\w\]'])", re.IGNORECASE)


def referenced_tables(expression: str, table_names: list[str]) -> list[str]:
    found = [n for n in table_names if n and _table_reference(n).search(expression)]
    return list(dict.fromkeys(found))[:MAX_REFERENCED_TABLES]


def referenced_columns(expression: str, column_refs: list[str]) -> list[str]:
    text = expression.lower()
    return [ref for ref in column_refs if ref.lower() in text][:MAX_REFERENCED_COLUMNS]


def complex_measures(measures: list[Measure]) -> list[str]:
    return [m.name for m in measures if COMPLEX_MEASURE.search(m.expression)]


def assemble_payload(
    measures: list[Measure], analyses: list[MeasureAnalysis]
) -> MeasureAnalysisPayload:
    """Attach lint results and summaries to a set of analyses."""
    lint_findings: dict[str, list[LintFinding]] = {}
    for measure in measures:
        findings = lint_dax(measure.expression)
        if findings:
            lint_findings[measure.name] = findings

    summary = [
        f"{a.measure}: {'; '.join(a.anti_patterns)}" for a in analyses if a.anti_patterns
    ]
    return MeasureAnalysisPayload(
        analyses=analyses,
        lint_findings=lint_findings,
        lint_summary=summarize_findings([f for fs in lint_findings.values() for f in fs]),
        anti_pattern_summary=summary[:MAX_ANTI_PATTERN_SUMMARY],
        complex_measures=complex_measures(measures),
    )


class MeasureAnalysisStage(BaseStage[MeasureAnalysisPayload]):
    """Analyze every measure formula."""

    @property
    def name(self) -> str:
        return "measure_analysis"

    @property
    def description(self) -> str:
        return "Per-measure DAX analysis"

    def should_skip(self, ctx: PipelineContext) -> str | None:
        if not ctx.model.measures:
            return NO_MEASURES_REASON
        return None

    def skipped_result(self, ctx: PipelineContext, reason: str) -> StageResult[MeasureAnalysisPayload]:
        return StageResult.succeeded(
            self.name,
            MeasureAnalysisPayload(skipped_reason=reason),
            1.0,
            metadata={"skipped_reason": reason},
        )

    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        """Inputs shared by every per-measure prompt."""
        return {
            "domain": ctx.domain,
            "relationship_count": len(ctx.model.relationships),
            "lint_checklist": "\n".join(f"- {item}" for item in LINT_CHECKLIST),
        }

    def measure_inputs(self, measure: Measure, ctx: PipelineContext) -> dict[str, Any]:
        tables = referenced_tables(measure.expression, [t.name for t in ctx.model.tables])
        columns = referenced_columns(measure.expression, [c.ref for c in ctx.model.columns])
        return {
            **self.build_inputs(ctx),
            "measure_name": measure.name or "Unnamed",
            "display_folder": measure.display_folder or "Not specified",
            "measure_description": measure.description or "No description provided",
            "dax": measure.expression,
            "referenced_tables": ", ".join(tables) or "(none detected)",
            "referenced_columns": ", ".join(columns) or "(none detected)",
        }

    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> MeasureAnalysisPayload:
        measures = {m.key: m for m in ctx.model.measures}
        analyses = []
        for entry in as_records(data.get("analyses")):
            name = as_text(pick(entry, "measure", "measure_name", "measureName")).lower()
            if name in measures:
                measure = measures[name]
                analyses.append(coerce_analysis(entry, measure, describe(measure), 1.0))
        return assemble_payload(ctx.model.measures, analyses)

    def _fallback(self, ctx: PipelineContext, error: str) -> MeasureAnalysisPayload:
        analyses = [heuristic_stub(m, describe(m), error) for m in ctx.model.measures]
        return assemble_payload(ctx.model.measures, analyses)

    async def _run(
        self, ctx: PipelineContext, client: LLMClient
    ) -> StageResult[MeasureAnalysisPayload]:
        measures = ctx.model.measures
        ceiling = client.feature(self.name).confidence_ceiling

        settled = await asyncio.gather(
            *(self._analyze(m, ctx, client, ceiling) for m in measures), return_exceptions=True
        )

        analyses: list[MeasureAnalysis] = []
        for measure, outcome in zip(measures, settled, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning("measure_analysis_failed", measure=measure.name, error=str(outcome))
                analyses.append(heuristic_stub(measure, describe(measure), str(outcome)))
            else:
                analyses.append(outcome)
        record_measures_processed(len(analyses))

        payload = assemble_payload(measures, analyses)
        failed = sum(1 for a in analyses if a.used_fallback)
        if failed == len(analyses):
            return StageResult.fallback(
                self.name,
                payload,
                FALLBACK_CONFIDENCE,
                error=f"All {failed} measure analyses fell back to heuristics",
            )

        confidence = min(ceiling, sum(a.confidence for a in analyses) / len(analyses))
        warnings = [f"{failed} measure(s) analysed by heuristics only"] if failed else []
        return StageResult.succeeded(
            self.name,
            payload,
            confidence,
            warnings=warnings,
            metadata={"analyzed": len(analyses), "heuristic_only": failed},
        )

    async def _analyze(
        self, measure: Measure, ctx: PipelineContext, client: LLMClient, ceiling: float
    ) -> MeasureAnalysis:
        heuristic = describe(measure)
        try:
            system, prompt, temperature = self.render(ctx, client, self.measure_inputs(measure, ctx))
        except (FileNotFoundError, KeyError, ValueError) as e:
            return heuristic_stub(measure, heuristic, f"Failed to render prompt: {e}")

        response = await client.generate(self.name, prompt, system=system, temperature=temperature)
        if not response.success:
            return heuristic_stub(measure, heuristic, response.error or "Unknown error")

        outcome = parse_json(response.unwrap().content, default={}, expected=dict)
        if outcome.used_default:
            return heuristic_stub(measure, heuristic, "Response contained no usable JSON object")
        return coerce_analysis(outcome.value, measure, heuristic, ceiling)
