"""Business glossary stage."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from modeldoc.analysis.enricher import enrich_measures
from modeldoc.analysis.heuristics import describe
from modeldoc.core.merge import as_mapping, as_records, as_text, pick, split_list
from modeldoc.pipeline.base import PipelineContext
from modeldoc.pipeline.models import (
    GlossaryOverview,
    GlossaryPayload,
    GlossaryTerm,
    QuickReference,
)
from modeldoc.pipeline.stages.base import BaseStage

MAX_PROMPT_MEASURES = 50
MAX_PROMPT_TABLES = 50
MAX_PROMPT_COLUMNS = 120

TERM_KINDS = frozenset({"measure", "table", "column", "concept"})


def coerce_term(entry: Mapping[str, Any]) -> GlossaryTerm | None:
    term = as_text(pick(entry, "term", "name"))
    if not term:
        return None
    kind = as_text(entry.get("kind"), "concept").lower()
    return GlossaryTerm(
        term=term,
        kind=kind if kind in TERM_KINDS else "concept",
        definition=as_text(entry.get("definition")),
        how_to_use=as_text(pick(entry, "how_to_use", "howToUse")),
        indicators=split_list(entry.get("indicators")),
        pitfalls=split_list(entry.get("pitfalls")),
        related=split_list(entry.get("related")),
    )


def coerce_quick_reference(entry: Mapping[str, Any]) -> QuickReference | None:
    name = as_text(pick(entry, "name", "term"))
    if not name:
        return None
    return QuickReference(
        name=name,
        definition=as_text(entry.get("definition")),
        when_to_use=as_text(pick(entry, "when_to_use", "whenToUse")),
        success_indicators=split_list(pick(entry, "success_indicators", "successIndicators")),
    )


class GlossaryStage(BaseStage[GlossaryPayload]):
    """Build the business glossary and metric quick reference."""

    @property
    def name(self) -> str:
        return "glossary"

    @property
    def description(self) -> str:
        return "Business glossary and metric quick reference"

    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        model = ctx.model
        return {
            "domain": ctx.domain,
            "stakeholders": list(ctx.stakeholders),
            "measures": [m.name for m in model.measures[:MAX_PROMPT_MEASURES]],
            "tables": [t.name for t in model.tables[:MAX_PROMPT_TABLES]],
            "columns": [c.ref for c in model.columns[:MAX_PROMPT_COLUMNS]],
            "categories": model.display_folders(),
        }

    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> GlossaryPayload:
        overview = as_mapping(data.get("overview"))
        quick_reference = pick(
            data, "metric_quick_reference", "metricQuickRef", "metricQuickReference", default=[]
        )
        return GlossaryPayload(
            overview=GlossaryOverview(
                domain=as_text(overview.get("domain"), ctx.domain),
                primary_use=as_text(pick(overview, "primary_use", "primaryUse")),
                stakeholders=split_list(overview.get("stakeholders")) or list(ctx.stakeholders),
                categories=split_list(overview.get("categories")),
                notes=split_list(overview.get("notes")),
            ),
            terms=[t for t in map(coerce_term, as_records(data.get("terms"))) if t],
            metric_quick_reference=[
                q for q in map(coerce_quick_reference, as_records(quick_reference)) if q
            ],
        )

    def _fallback(self, ctx: PipelineContext, error: str) -> GlossaryPayload:
        model = ctx.model
        counts = model.column_counts()

        terms = []
        for measure in model.measures:
            heuristic = describe(measure)
            terms.append(
                GlossaryTerm(
                    term=measure.name,
                    kind="measure",
                    definition=measure.description or heuristic.purpose,
                    how_to_use=heuristic.when_to_use,
                    indicators=heuristic.success_indicators,
                    pitfalls=heuristic.risks,
                    related=heuristic.dependencies,
                )
            )
        for table in model.tables:
            terms.append(
                GlossaryTerm(
                    term=table.name,
                    kind="table",
                    definition=table.description
                    or f"{table.role.value.capitalize()} table with {counts.get(table.key, 0)} columns",
                )
            )

        quick_reference = [
            QuickReference(
                name=m.name,
                definition=m.purpose,
                when_to_use=m.when_to_use,
                success_indicators=m.success_indicators,
            )
            for m in enrich_measures(model.measures)
        ]

        return GlossaryPayload(
            overview=GlossaryOverview(
                domain=ctx.domain,
                primary_use=ctx.business_context or "Data analysis",
                stakeholders=list(ctx.stakeholders),
                categories=model.display_folders(),
                notes=["Definitions derived from measure formulas without AI"],
            ),
            terms=terms,
            metric_quick_reference=quick_reference,
        )
