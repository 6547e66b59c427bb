"""Report synthesis stage.

Fan-in point of the pipeline: reads every earlier stage output from the
context and asks for one combined report. Whatever comes back goes through
``coerce_report``, so the payload always has one measure per parsed measure.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from modeldoc.pipeline.base import PipelineContext
from modeldoc.pipeline.coercion import ReportSources, coerce_report
from modeldoc.pipeline.stages.base import BaseStage
from modeldoc.report.models import FinalReport

SUMMARY_LENGTH = 1200
MAX_PROMPT_MEASURES = 999

SUMMARY_STAGES = ("domain_classification", "glossary", "architecture")


def truncate(text: str, length: int = SUMMARY_LENGTH) -> str:
    if len(text) <= length:
        return text
    return text[:length] + "…"


class SynthesisStage(BaseStage[FinalReport]):
    """Combine classification, glossary, architecture and measure analyses."""

    @property
    def name(self) -> str:
        return "synthesis"

    @property
    def description(self) -> str:
        return "Combine analyses into one report"

    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        model = ctx.model
        sources = ReportSources.from_context(ctx)

        summaries = {}
        for stage_name in SUMMARY_STAGES:
            result = ctx.output(stage_name)
            if result is not None:
                summaries[stage_name] = truncate(
                    json.dumps(result.payload.model_dump(mode="json"), default=str)
                )

        dax_items = []
        for measure in model.measures[:MAX_PROMPT_MEASURES]:
            analysis = sources.analyses.get(measure.key)
            dax_items.append(
                {
                    "measureName": measure.name,
                    "formula": measure.expression,
                    "purpose": analysis.purpose if analysis else "",
                    "complexity": analysis.complexity.value if analysis else "",
                    "risks": analysis.risks if analysis else [],
                    "suggestedFixes": [
                        {"title": f.title, "rationale": f.rationale, "fixedDax": f.fixed_dax}
                        for f in (analysis.suggested_fixes if analysis else [])
                    ],
                }
            )

        counts = model.column_counts()
        tables = [
            {
                "name": t.name,
                "category": "Regular",
                "columns": counts.get(t.key, 0),
                "summary": sources.table_summaries.get(t.key, t.description),
            }
            for t in model.tables
        ]
        relationships = [
            {
                "from": r.from_ref,
                "to": r.to_ref,
                "cardinality": r.cardinality.value,
                "direction": r.direction.value,
            }
            for r in model.relationships
        ]
        return {
            "business_domain": ctx.domain,
            "summaries": summaries,
            "dax_items": dax_items,
            "tables": tables,
            "relationships": relationships,
            "lint_findings": sources.lint_findings,
            "measure_count": len(dax_items),
        }

    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> FinalReport:
        return coerce_report(data, ReportSources.from_context(ctx))

    def _fallback(self, ctx: PipelineContext, error: str) -> FinalReport:
        report = coerce_report({}, ReportSources.from_context(ctx))
        report.overview.notes = [*report.overview.notes, "Report assembled without AI synthesis"]
        return report
