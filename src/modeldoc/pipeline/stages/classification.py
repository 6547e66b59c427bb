"""Domain classification stage.

Runs first. Its domain, stakeholders and business context are copied into the
pipeline context for every later stage.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from modeldoc.core.merge import as_mapping, as_text, pick, split_list
from modeldoc.pipeline.base import PipelineContext
from modeldoc.pipeline.models import (
    ClassificationPayload,
    ExecutiveSummary,
    Signals,
    StakeholderGroups,
)
from modeldoc.pipeline.stages.base import BaseStage

GENERIC_DOMAIN = "Analytics Model"
DEFAULT_STAKEHOLDERS = ["Executives", "Business Owners", "Analysts", "BI Developers"]

MAX_PROMPT_MEASURES = 12
HINT_LENGTH = 80
MAX_SIGNALS = 8

_GENERIC_DOMAIN = re.compile(r"^(business intelligence|unknown|analytics)$", re.IGNORECASE)
_CALENDAR = re.compile(r"calendar|date", re.IGNORECASE)
_SALES = re.compile(r"sale|order|invoice", re.IGNORECASE)
_FINANCE = re.compile(r"financ|ledger|account", re.IGNORECASE)


def resolve_domain(domain: Any) -> str:
    """Keep a specific domain; generic or empty labels become ``Analytics Model``."""
    text = as_text(domain)
    if not text or _GENERIC_DOMAIN.match(text):
        return GENERIC_DOMAIN
    return text


def resolve_stakeholders(groups: StakeholderGroups) -> list[str]:
    return groups.all() or list(DEFAULT_STAKEHOLDERS)


class ClassificationStage(BaseStage[ClassificationPayload]):
    """Classify the business domain and stakeholders of the model."""

    @property
    def name(self) -> str:
        return "domain_classification"

    @property
    def description(self) -> str:
        return "Business domain, stakeholders and processes"

    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        # Names plus a short formula hint only; full formulas add noise here.
        measures = [
            {"name": m.name, "hint": m.expression[:HINT_LENGTH]}
            for m in ctx.model.measures[:MAX_PROMPT_MEASURES]
        ]
        return {
            "tables": [t.name for t in ctx.model.tables],
            "measures": measures,
        }

    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> ClassificationPayload:
        summary = as_mapping(pick(data, "executive_summary", "executiveSummary"))
        groups = as_mapping(data.get("stakeholders"))
        signals = as_mapping(data.get("signals"))
        return ClassificationPayload(
            domain=resolve_domain(data.get("domain")),
            executive_summary=ExecutiveSummary(
                purpose=as_text(summary.get("purpose")),
                users=split_list(summary.get("users")),
                value=split_list(summary.get("value")),
                decisions=split_list(summary.get("decisions")),
            ),
            stakeholders=StakeholderGroups(
                primary=split_list(groups.get("primary")),
                management=split_list(groups.get("management")),
                support=split_list(groups.get("support")),
            ),
            business_processes=split_list(pick(data, "business_processes", "businessProcesses")),
            signals=Signals(
                from_measures=split_list(pick(signals, "from_measures", "fromMeasures")),
                from_tables=split_list(pick(signals, "from_tables", "fromTables")),
            ),
            notes=split_list(data.get("notes")),
        )

    def _fallback(self, ctx: PipelineContext, error: str) -> ClassificationPayload:
        table_names = [t.name for t in ctx.model.tables]
        measure_names = [m.name for m in ctx.model.measures]

        has_sales = any(_SALES.search(n) for n in table_names)
        has_finance = any(_FINANCE.search(n) for n in table_names)
        has_calendar = any(_CALENDAR.search(n) for n in table_names)

        if has_sales:
            domain = "Sales Analytics"
        elif has_finance:
            domain = "Financial Analytics"
        else:
            domain = GENERIC_DOMAIN

        processes = []
        if has_sales:
            processes.append("Sales Performance")
        if has_finance:
            processes.append("Financial Reporting")
        if has_calendar:
            processes.append("Time Intelligence")

        return ClassificationPayload(
            domain=domain,
            executive_summary=ExecutiveSummary(
                purpose=(
                    f"Describes core KPIs and relationships across {len(table_names)} tables "
                    f"and {len(measure_names)} measures"
                ),
                users=["Analysts", "Business Owners", "BI Developers"],
                value=["Shared understanding of metrics", "Improved decision-making"],
                decisions=["Prioritise KPIs", "Identify data gaps"],
            ),
            stakeholders=StakeholderGroups(
                primary=["Analysts", "Ops Manager"],
                management=["Directors", "Leads"],
                support=["BI Developers"],
            ),
            business_processes=processes or ["Reporting", "Analysis"],
            signals=Signals(
                from_measures=[f"Measure: {n}" for n in measure_names[:MAX_SIGNALS]],
                from_tables=[f"Table: {n}" for n in table_names[:MAX_SIGNALS]],
            ),
            notes=["Generated without AI due to unavailable service"],
        )

    @staticmethod
    def apply(ctx: PipelineContext, payload: ClassificationPayload) -> PipelineContext:
        """Copy of ``ctx`` carrying the classification for later stages."""
        return ctx.with_classification(
            domain=payload.domain,
            stakeholders=resolve_stakeholders(payload.stakeholders),
            business_context=payload.executive_summary.purpose,
        )
