"""Report coercion.

Turns whatever the synthesis stage returned into a complete FinalReport.
Structure always comes from the parsed model: one measure per input measure
in input order, one table per input table, every relationship as parsed.
Generated text only fills the descriptive fields, and each of those fields is
resolved independently with ``coalesce`` in a fixed priority order.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from modeldoc.analysis.formats import default_format_string
from modeldoc.analysis.heuristics import MeasureDescription, describe, estimate_complexity
from modeldoc.core.logging import get_logger
from modeldoc.core.merge import (
    as_mapping,
    as_records,
    as_text,
    coalesce,
    dedupe,
    pick,
    split_list,
)
from modeldoc.core.models import Complexity
from modeldoc.llm.parsing import parse_json
from modeldoc.model.entities import Measure, SemanticModel, Table
from modeldoc.pipeline.base import PipelineContext
from modeldoc.pipeline.models import (
    ArchitecturePayload,
    ClassificationPayload,
    GlossaryPayload,
    MeasureAnalysis,
    MeasureAnalysisPayload,
    QuickReference,
)
from modeldoc.report.models import (
    FinalReport,
    Fix,
    MeasureTest,
    Overview,
    ReportMeasure,
    ReportRelationship,
    ReportTable,
)

logger = get_logger(__name__)


@dataclass
class ReportSources:
    """Upstream data the coercion falls back on, in one place."""

    model: SemanticModel
    domain: str = "Analytics Model"
    stakeholders: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    analyses: dict[str, MeasureAnalysis] = field(default_factory=dict)
    quick_reference: dict[str, QuickReference] = field(default_factory=dict)
    table_summaries: dict[str, str] = field(default_factory=dict)
    lint_findings: list[str] = field(default_factory=list)

    @classmethod
    def from_context(cls, ctx: PipelineContext) -> ReportSources:
        """Collect whatever the earlier stages produced; missing stages contribute nothing."""
        sources = cls(
            model=ctx.model,
            domain=ctx.domain,
            stakeholders=list(ctx.stakeholders),
        )
        for result in ctx.outputs.values():
            payload = result.payload
            if isinstance(payload, ClassificationPayload):
                sources.notes = list(payload.notes)
            elif isinstance(payload, GlossaryPayload):
                for entry in payload.metric_quick_reference:
                    sources.quick_reference.setdefault(entry.name.lower(), entry)
            elif isinstance(payload, ArchitecturePayload):
                for table in payload.tables:
                    if table.summary:
                        sources.table_summaries.setdefault(table.name.lower(), table.summary)
            elif isinstance(payload, MeasureAnalysisPayload):
                sources.analyses = payload.by_measure()
                sources.lint_findings = dedupe(
                    [*payload.findings_text(), *payload.anti_pattern_summary]
                )
        return sources


def _index_by_name(entries: list[Mapping[str, Any]], *keys: str) -> dict[str, Mapping[str, Any]]:
    index: dict[str, Mapping[str, Any]] = {}
    for entry in entries:
        name = as_text(pick(entry, *keys)).lower()
        if name:
            index.setdefault(name, entry)
    return index


def _complexity(value: Any) -> Complexity | None:
    try:
        return Complexity(as_text(value).lower())
    except ValueError:
        return None


def _generated_fixes(entry: Mapping[str, Any]) -> list[Fix]:
    return [
        Fix(
            title=as_text(f.get("title")),
            rationale=as_text(f.get("rationale")),
            fixed_dax=as_text(pick(f, "fixedDax", "fixed_dax")),
        )
        for f in as_records(pick(entry, "fixes", "suggestedFixes"))
        if as_text(f.get("title"))
    ]


def coerce_measure(
    measure: Measure,
    generated: Mapping[str, Any],
    analysis: MeasureAnalysis | None,
    quick: QuickReference | None,
    heuristic: MeasureDescription,
) -> ReportMeasure:
    """Resolve every field of one report measure by priority.

    Generated text first, then the per-measure analysis, then the glossary
    quick reference, then heuristics, then what the export carried.
    """
    analysis_fixes = [
        Fix(title=f.title, rationale=f.rationale, fixed_dax=f.fixed_dax)
        for f in (analysis.suggested_fixes if analysis else [])
    ]
    return ReportMeasure(
        name=measure.name,
        purpose=coalesce(
            as_text(pick(generated, "purpose", "businessMeaning")),
            analysis.purpose if analysis else None,
            quick.definition if quick else None,
            heuristic.purpose,
            measure.description,
            default="",
        ),
        formula=coalesce(
            measure.expression, as_text(pick(generated, "formula", "dax")), default=""
        ),
        complexity=coalesce(
            _complexity(generated.get("complexity")),
            analysis.complexity if analysis else None,
            default=estimate_complexity(measure.expression),
        ),
        risks=coalesce(
            split_list(generated.get("risks")),
            analysis.risks if analysis else None,
            heuristic.risks,
            default=[],
        ),
        fixes=coalesce(_generated_fixes(generated), analysis_fixes, default=[]),
        when_to_use=coalesce(
            as_text(pick(generated, "whenToUse", "when_to_use")),
            quick.when_to_use if quick else None,
            heuristic.when_to_use,
            default="",
        ),
        success_indicators=coalesce(
            split_list(pick(generated, "successIndicators", "success_indicators")),
            quick.success_indicators if quick else None,
            heuristic.success_indicators,
            default=[],
        ),
        dependencies=coalesce(
            split_list(generated.get("dependencies")),
            analysis.dependencies if analysis else None,
            heuristic.dependencies,
            default=[],
        ),
        folder=coalesce(as_text(generated.get("folder")), measure.display_folder, default=""),
        description=coalesce(
            as_text(generated.get("description")), measure.description, default=""
        ),
        format_string=coalesce(
            as_text(pick(generated, "formatString", "format_string")),
            measure.format_string,
            default_format_string(measure.name, measure.expression),
            default="",
        ),
        tests=[
            MeasureTest(scenario=t.scenario, expectation=t.expectation)
            for t in (analysis.tests if analysis else [])
        ],
    )


def coerce_table(
    table: Table, generated: Mapping[str, Any], column_count: int, summary: str | None
) -> ReportTable:
    return ReportTable(
        name=table.name,
        category=coalesce(as_text(generated.get("category")), default="Regular"),
        # Column counts always come from the parsed column list.
        columns=column_count,
        summary=coalesce(as_text(generated.get("summary")), summary, table.description, default=""),
    )


def coerce_report(raw: str | Mapping[str, Any] | None, sources: ReportSources) -> FinalReport:
    """Coerce a synthesis response of any shape into a complete report.

    Args:
        raw: Response text or an already parsed object; anything unusable
            is treated as an empty object
        sources: Upstream model and stage outputs

    Returns:
        FinalReport with exactly one measure per parsed measure
    """
    if isinstance(raw, str):
        data = as_mapping(parse_json(raw, default={}, expected=dict).value)
    else:
        data = as_mapping(raw)

    model = sources.model
    overview = as_mapping(data.get("overview"))

    generated_measures = as_records(data.get("measures"))
    measure_index = _index_by_name(generated_measures, "name", "measureName", "measure")
    extra = len(generated_measures) - len(measure_index)
    unmatched = [name for name in measure_index if name not in {m.key for m in model.measures}]
    if extra or unmatched or len(measure_index) != len(model.measures):
        logger.info(
            "report_measures_repaired",
            expected=len(model.measures),
            generated=len(generated_measures),
            dropped=extra + len(unmatched),
        )

    measures = [
        coerce_measure(
            measure,
            measure_index.get(measure.key, {}),
            sources.analyses.get(measure.key),
            sources.quick_reference.get(measure.key),
            describe(measure),
        )
        for measure in model.measures
    ]

    table_index = _index_by_name(as_records(data.get("tables")), "name")
    counts = model.column_counts()
    tables = [
        coerce_table(
            table,
            table_index.get(table.key, {}),
            counts.get(table.key, 0),
            sources.table_summaries.get(table.key),
        )
        for table in model.tables
    ]

    relationships = [
        ReportRelationship(
            from_ref=rel.from_ref,
            to=rel.to_ref,
            cardinality=rel.cardinality.value,
            direction=rel.direction.value,
            active=rel.active,
        )
        for rel in model.relationships
    ]

    lint_findings = dedupe(
        [*split_list(pick(data, "lintFindings", "lint_findings")), *sources.lint_findings]
    )

    return FinalReport(
        overview=Overview(
            domain=coalesce(sources.domain, as_text(overview.get("domain")), default="Analytics Model"),
            tables=len(model.tables),
            measures=len(model.measures),
            relationships=len(model.relationships),
            stakeholders=coalesce(
                split_list(overview.get("stakeholders")), sources.stakeholders, default=[]
            ),
            notes=coalesce(split_list(overview.get("notes")), sources.notes, default=[]),
        ),
        measures=measures,
        tables=tables,
        relationships=relationships,
        lint_findings=lint_findings,
    )
