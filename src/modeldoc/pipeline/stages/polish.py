"""Content polish stage.

Only short text fields are sent for editing, each under an id such as
``measures[3].risks[0]`` with a word limit. The response is a flat list of
``{"id", "text"}`` items applied back by id, so names, formulas and counts
can never be changed by this stage. Domain and counts are pinned to the
parsed model before and after the call.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from modeldoc.analysis.enricher import enrich_measures
from modeldoc.core.merge import as_records, as_text, coalesce
from modeldoc.pipeline.base import PipelineContext, StageResult
from modeldoc.pipeline.coercion import ReportSources, coerce_report
from modeldoc.pipeline.models import PolishPayload, PolishQuality
from modeldoc.pipeline.stages.base import BaseStage
from modeldoc.report.models import FinalReport

REPORT_EXCERPT_LENGTH = 2000
PROFESSIONALISM = 0.9

NOTE_WORDS = 25
PURPOSE_WORDS = 40
RISK_WORDS = 18
FIX_TITLE_WORDS = 12
FIX_RATIONALE_WORDS = 30
TABLE_SUMMARY_WORDS = 30
LINT_WORDS = 18


@dataclass(frozen=True)
class PolishItem:
    """One text field offered for editing."""

    id: str
    text: str
    max_words: int

    def to_prompt(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "maxWords": self.max_words}


def collect_items(report: FinalReport) -> list[PolishItem]:
    items = [
        PolishItem(f"overview.notes[{i}]", note, NOTE_WORDS)
        for i, note in enumerate(report.overview.notes)
    ]
    for i, measure in enumerate(report.measures):
        if measure.purpose:
            items.append(PolishItem(f"measures[{i}].purpose", measure.purpose, PURPOSE_WORDS))
        for j, risk in enumerate(measure.risks):
            items.append(PolishItem(f"measures[{i}].risks[{j}]", risk, RISK_WORDS))
        for j, fix in enumerate(measure.fixes):
            if fix.title:
                items.append(PolishItem(f"measures[{i}].fixes[{j}].title", fix.title, FIX_TITLE_WORDS))
            if fix.rationale:
                items.append(
                    PolishItem(f"measures[{i}].fixes[{j}].rationale", fix.rationale, FIX_RATIONALE_WORDS)
                )
    for i, table in enumerate(report.tables):
        if table.summary:
            items.append(PolishItem(f"tables[{i}].summary", table.summary, TABLE_SUMMARY_WORDS))
    for i, finding in enumerate(report.lint_findings):
        items.append(PolishItem(f"lintFindings[{i}]", finding, LINT_WORDS))
    return items


def apply_polish(report: FinalReport, polished: Mapping[str, str]) -> tuple[FinalReport, int]:
    """Copy of ``report`` with polished texts applied by id.

    Unknown ids and blank texts are ignored.

    Returns:
        The polished copy and the number of fields replaced
    """
    if not polished:
        return report, 0

    clone = report.model_copy(deep=True)
    applied = 0

    def take(item_id: str, current: str) -> str:
        nonlocal applied
        text = as_text(polished.get(item_id))
        if not text:
            return current
        applied += 1
        return text

    clone.overview.notes = [take(f"overview.notes[{i}]", n) for i, n in enumerate(clone.overview.notes)]
    for i, measure in enumerate(clone.measures):
        if measure.purpose:
            measure.purpose = take(f"measures[{i}].purpose", measure.purpose)
        measure.risks = [take(f"measures[{i}].risks[{j}]", r) for j, r in enumerate(measure.risks)]
        for j, fix in enumerate(measure.fixes):
            if fix.title:
                fix.title = take(f"measures[{i}].fixes[{j}].title", fix.title)
            if fix.rationale:
                fix.rationale = take(f"measures[{i}].fixes[{j}].rationale", fix.rationale)
    for i, table in enumerate(clone.tables):
        if table.summary:
            table.summary = take(f"tables[{i}].summary", table.summary)
    clone.lint_findings = [take(f"lintFindings[{i}]", f) for i, f in enumerate(clone.lint_findings)]
    return clone, applied


def estimate_coverage(report: FinalReport) -> float:
    overview = report.overview

    def ratio(present: int, expected: int) -> float:
        return min(1.0, present / max(1, expected or present))

    coverage = (
        ratio(len(report.measures), overview.measures) * 0.5
        + ratio(len(report.tables), overview.tables) * 0.3
        + ratio(len(report.relationships), overview.relationships) * 0.2
    )
    return round(coverage, 2)


def estimate_readability(report: FinalReport) -> float:
    """Shorter purposes and notes read better. Clamped to ``[0.7, 0.95]``."""
    purposes = " ".join(m.purpose for m in report.measures)
    notes = " ".join(report.overview.notes)
    length = (len(purposes) + len(notes)) or 1
    return round(max(0.7, min(0.95, 1 - length / 20000)), 2)


def estimate_quality(report: FinalReport) -> PolishQuality:
    return PolishQuality(
        professionalism=PROFESSIONALISM,
        coverage=estimate_coverage(report),
        readability=estimate_readability(report),
    )


def polish_confidence(quality: PolishQuality) -> float:
    return min(0.98, 0.8 + quality.readability * 0.15 + quality.professionalism * 0.05)


def recommendations(report: FinalReport) -> list[str]:
    recs = []
    if report.lint_findings:
        recs.append("Address lint findings in measures to improve reliability.")
    if any(m.fixes for m in report.measures):
        recs.append("Review suggested DAX fixes and validate against business rules.")
    if not report.overview.notes:
        recs.append("Add 2 or 3 business notes to the overview for stakeholder context.")
    return recs or ["Review with stakeholders and publish to your documentation portal."]


class PolishStage(BaseStage[PolishPayload]):
    """Tighten report wording without touching facts."""

    @property
    def name(self) -> str:
        return "polish"

    @property
    def description(self) -> str:
        return "Stakeholder-ready wording with fixed statistics"

    def source_report(self, ctx: PipelineContext) -> FinalReport:
        """The synthesis report with domain and counts pinned to the parsed model."""
        result = ctx.output("synthesis")
        if result is not None and isinstance(result.payload, FinalReport):
            report = result.payload
        else:
            report = coerce_report({}, ReportSources.from_context(ctx))
        overview = report.overview.model_copy(
            update={
                "domain": ctx.domain,
                "tables": len(ctx.model.tables),
                "measures": len(ctx.model.measures),
                "relationships": len(ctx.model.relationships),
                "stakeholders": report.overview.stakeholders or list(ctx.stakeholders),
            }
        )
        return report.model_copy(update={"overview": overview}, deep=True)

    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        report = self.source_report(ctx)
        excerpt = json.dumps(report.to_json_dict(), indent=2)[:REPORT_EXCERPT_LENGTH]
        return {
            "domain": report.overview.domain,
            "stakeholders": list(ctx.stakeholders),
            "tables_count": report.overview.tables,
            "measures_count": report.overview.measures,
            "relationships_count": report.overview.relationships,
            "items": [item.to_prompt() for item in collect_items(report)],
            "report_excerpt": excerpt,
        }

    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> PolishPayload:
        polished = {
            as_text(item.get("id")): as_text(item.get("text"))
            for item in as_records(data.get("items"))
            if as_text(item.get("id"))
        }
        report, applied = apply_polish(self.source_report(ctx), polished)
        report = self.fill_missing(report, ctx)
        return PolishPayload(
            report=report,
            quality=estimate_quality(report),
            recommendations=recommendations(report),
            items_applied=applied,
        )

    def _fallback(self, ctx: PipelineContext, error: str) -> PolishPayload:
        report = self.fill_missing(self.source_report(ctx), ctx)
        return PolishPayload(
            report=report,
            quality=estimate_quality(report),
            recommendations=recommendations(report),
        )

    def fill_missing(self, report: FinalReport, ctx: PipelineContext) -> FinalReport:
        """Fill empty purpose, usage and indicator fields from the glossary and heuristics."""
        sources = ReportSources.from_context(ctx)
        enriched = {
            m.name.lower(): m
            for m in enrich_measures(ctx.model.measures, sources.quick_reference.values())
        }
        for measure in report.measures:
            entry = enriched.get(measure.name.lower())
            if entry is None:
                continue
            measure.purpose = coalesce(measure.purpose, entry.purpose, default="")
            measure.when_to_use = coalesce(measure.when_to_use, entry.when_to_use, default="")
            measure.success_indicators = coalesce(
                measure.success_indicators, entry.success_indicators, default=[]
            )
        return report

    def interpret(self, text: str, ctx: PipelineContext, ceiling: float) -> StageResult[PolishPayload]:
        result = super().interpret(text, ctx, ceiling)
        if result.used_fallback:
            return result
        confidence = min(ceiling, polish_confidence(result.payload.quality))
        return replace(
            result,
            confidence=confidence,
            metadata={**result.metadata, "items_applied": result.payload.items_applied},
        )
