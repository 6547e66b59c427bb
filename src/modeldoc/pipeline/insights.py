"""Contextual insights.

Built after the polish stage from every stage payload, without further
generation calls. Adds business-user guidance, executive scores, an
improvement roadmap, lineage, usage guidance and stakeholder context to the
report, and annotates suggested fixes with impact and effort estimates.
"""

from __future__ import annotations

import re
from typing import TypeVar
from collections import Counter

from modeldoc.core.models import Cardinality, Complexity, SchemaType
from modeldoc.pipeline.base import PipelineContext
from modeldoc.pipeline.models import (
    ArchitecturePayload,
    ClassificationPayload,
    GlossaryPayload,
    GlossaryTerm,
    MeasureAnalysis,
    MeasureAnalysisPayload,
    QuickReference,
)
from modeldoc.report.models import (
    CadenceRecommendation,
    ComplexityAssessment,
    DataFlow,
    DataLineage,
    EnhancedFix,
    ExecutiveInsight,
    FinalReport,
    GuidanceItem,
    GuidanceSection,
    Improvement,
    KeyEntities,
    MeasureGuidance,
    ProcessAlignment,
    RelationshipPatterns,
    ReportRelationship,
    StakeholderContext,
    UsageGuidance,
)

DEFAULT_DOMAIN_CONFIDENCE = 0.5
MAX_FOCUS_ROLES = 3
MAX_ARCHITECTURE_ITEMS = 5
MAX_FIX_ITEMS = 3
MAX_RELATED_TERMS = 3
SHORT_DEFINITION = 10

_HIGH_IMPACT = re.compile(r"\b(performance|efficiency|optimize|faster|speed)\b", re.IGNORECASE)
_MEDIUM_IMPACT = re.compile(
    r"\b(error|risk|issue|problem|failure|replace|substitute|alternative)\b", re.IGNORECASE
)
_EFFORT_MARKERS = re.compile(r"\b(VAR|RETURN|CALCULATE|FILTER|SUMX|AVERAGEX)\b")
_PERFORMANCE_RISK = re.compile(r"\b(performance|slow|timeout|memory|cpu)\b", re.IGNORECASE)
_ACCURACY = re.compile(r"\b(accuracy|correctness|calculation|wrong|incorrect)\b", re.IGNORECASE)

# Checked in order; the first match wins.
CADENCE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(daily|day|everyday)\b"), "Daily"),
    (re.compile(r"\b(weekly|week)\b"), "Weekly"),
    (re.compile(r"\b(monthly|month)\b"), "Monthly"),
    (re.compile(r"\b(quarterly|quarter|q[1-4])\b"), "Quarterly"),
    (re.compile(r"\b(annual|yearly|year)\b"), "Annual"),
    (re.compile(r"\b(real.?time|live|continuous|ongoing)\b"), "Real-time"),
    (re.compile(r"\b(meeting|review|report)\b"), "Weekly"),
    (re.compile(r"\b(planning|forecast|budget)\b"), "Monthly"),
    (re.compile(r"\b(strategic|board|executive)\b"), "Quarterly"),
]


T = TypeVar("T")


def _payload(ctx: PipelineContext, stage_name: str, kind: type[T]) -> T:
    result = ctx.output(stage_name)
    if result is not None and isinstance(result.payload, kind):
        return result.payload
    return kind()


# === Business-user guidance ===


def stakeholder_focus(role: str) -> str:
    lower = role.lower()
    if "manager" in lower or "director" in lower:
        return "Operational metrics and team performance indicators"
    if "executive" in lower or "vp" in lower or "ceo" in lower:
        return "High-level KPIs and strategic indicators"
    if "analyst" in lower or "specialist" in lower:
        return "Detailed breakdowns and trend analysis"
    if "finance" in lower or "financial" in lower:
        return "Financial performance and cost metrics"
    return "Core business metrics relevant to role"


def business_user_guidance(
    glossary: GlossaryPayload, classification: ClassificationPayload
) -> list[GuidanceSection]:
    sections = []
    usage = [
        GuidanceItem(
            measure=q.name,
            guidance=q.when_to_use or "Use as needed",
            indicators=q.success_indicators,
        )
        for q in glossary.metric_quick_reference
    ]
    if usage:
        sections.append(GuidanceSection(category="Metric Usage Patterns", items=usage))

    roles = classification.stakeholders.primary[:MAX_FOCUS_ROLES]
    if roles:
        sections.append(
            GuidanceSection(
                category="Stakeholder Focus Areas",
                items=[GuidanceItem(role=role, guidance=stakeholder_focus(role)) for role in roles],
            )
        )

    return sections or [
        GuidanceSection(
            category="General Guidance",
            items=[
                GuidanceItem(
                    role="All Users",
                    guidance="Use this model for data analysis and reporting needs",
                )
            ],
        )
    ]


# === Executive insights ===


def measure_complexity(analyses: list[MeasureAnalysis]) -> str:
    """High when over 30% of measures are complex, Low when over 60% are simple."""
    if not analyses:
        return "Medium"
    counts = Counter(a.complexity for a in analyses)
    if counts[Complexity.COMPLEX] / len(analyses) > 0.3:
        return "High"
    if counts[Complexity.SIMPLE] / len(analyses) > 0.6:
        return "Low"
    return "Medium"


def maturity_score(schema_type: SchemaType, governance_issues: int, complexity: str) -> float:
    score = 0.7
    if schema_type == SchemaType.STAR:
        score += 0.15
    elif schema_type == SchemaType.SNOWFLAKE:
        score += 0.1

    score -= min(governance_issues * 0.05, 0.2)

    if complexity == "Low":
        score += 0.05
    elif complexity == "High":
        score -= 0.05
    return max(0.4, min(0.95, score))


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count > 1 else ''}"


def executive_insights(
    classification: ClassificationPayload,
    domain_confidence: float,
    architecture: ArchitecturePayload,
    analyses: list[MeasureAnalysis],
) -> list[ExecutiveInsight]:
    schema_type = architecture.overview.schema_type
    governance_issues = len(architecture.governance.risks)
    complexity = measure_complexity(analyses)

    groups = classification.stakeholders
    coverage = len(groups.primary) + len(groups.management)

    if domain_confidence > 0.8:
        clarity = "High"
    elif domain_confidence > 0.6:
        clarity = "Medium"
    else:
        clarity = "Low"

    return [
        ExecutiveInsight(
            category="Model Maturity",
            score=maturity_score(schema_type, governance_issues, complexity),
            details={
                "architecture": schema_type.value,
                "governanceHealth": "Clean"
                if governance_issues == 0
                else f"{_plural(governance_issues, 'issue')} identified",
                "measureComplexity": complexity,
            },
        ),
        ExecutiveInsight(
            category="Business Readiness",
            score=min(0.95, domain_confidence * 0.7 + min(coverage / 8, 1) * 0.3),
            details={
                "domainClarity": clarity,
                "stakeholderAlignment": f"{_plural(coverage, 'stakeholder group')} identified"
                if coverage
                else "No stakeholders identified",
                "businessContext": classification.executive_summary.purpose
                or classification.domain
                or "Data analysis system",
            },
        ),
    ]


# === Roadmap and fixes ===


def improvement_roadmap(
    architecture: ArchitecturePayload, analyses: list[MeasureAnalysis], glossary: GlossaryPayload
) -> list[Improvement]:
    roadmap = []
    architecture_items = [*architecture.issues, *architecture.governance.risks]
    if architecture_items:
        roadmap.append(
            Improvement(
                priority="High",
                category="Data Architecture",
                items=architecture_items[:MAX_ARCHITECTURE_ITEMS],
            )
        )

    fixes = [fix for a in analyses for fix in a.suggested_fixes]
    if fixes:
        roadmap.append(
            Improvement(
                priority="Medium",
                category="DAX Formula Optimization",
                items=[f"{f.title}: {f.rationale}" for f in fixes[:MAX_FIX_ITEMS]],
            )
        )

    undefined = [t for t in glossary.terms if len(t.definition) < SHORT_DEFINITION]
    if undefined:
        roadmap.append(
            Improvement(
                priority="Low",
                category="Business Documentation",
                items=[f"Complete definitions for {len(undefined)} business terms"],
            )
        )
    return roadmap


def fix_impact(title: str) -> str:
    if _HIGH_IMPACT.search(title):
        return "High"
    if _MEDIUM_IMPACT.search(title):
        return "Medium"
    return "Low"


def implementation_effort(dax: str) -> str:
    if not dax:
        return "Low"
    markers = len(_EFFORT_MARKERS.findall(dax))
    if len(dax) > 300 or markers > 5:
        return "High"
    if len(dax) > 150 or markers > 2:
        return "Medium"
    return "Low"


def business_benefit(title: str, risks: list[str]) -> str:
    risk_text = " ".join(risks)
    if _PERFORMANCE_RISK.search(risk_text):
        return "High"
    if _ACCURACY.search(f"{title} {risk_text}"):
        return "High"
    return "Medium"


def enhanced_fixes(analysis: MeasureAnalysis) -> list[EnhancedFix]:
    return [
        EnhancedFix(
            title=fix.title,
            rationale=fix.rationale,
            fixed_dax=fix.fixed_dax,
            impact=fix_impact(fix.title),
            implementation_effort=implementation_effort(fix.fixed_dax),
            business_benefit=business_benefit(fix.title, analysis.risks),
        )
        for fix in analysis.suggested_fixes
    ]


# === Lineage ===


def relationship_patterns(relationships: list[ReportRelationship]) -> RelationshipPatterns:
    return RelationshipPatterns(
        total_relationships=len(relationships),
        many_to_one=sum(1 for r in relationships if r.cardinality == Cardinality.MANY_TO_ONE.value),
        one_to_many=sum(1 for r in relationships if r.cardinality == Cardinality.ONE_TO_MANY.value),
        inactive=sum(1 for r in relationships if not r.active),
    )


def data_lineage(
    architecture: ArchitecturePayload, relationships: list[ReportRelationship]
) -> DataLineage:
    return DataLineage(
        key_entities=KeyEntities(
            fact_tables=architecture.tables_with_role("fact"),
            dimension_tables=architecture.tables_with_role("dimension"),
            calendar_tables=architecture.tables_with_role("calendar"),
        ),
        relationship_patterns=relationship_patterns(relationships),
        data_flow=[
            DataFlow(from_ref=edge.source, to=edge.target, via=edge.via or "Direct relationship")
            for edge in architecture.lineage
        ],
    )


# === Usage guidance ===


def related_terms(measure_name: str, terms: list[GlossaryTerm]) -> list[str]:
    words = measure_name.lower().split()
    first_word = words[0] if words else ""
    related = [
        t.term
        for t in terms
        if measure_name in t.related or (first_word and first_word in t.term.lower())
    ]
    return related[:MAX_RELATED_TERMS]


def process_alignment(processes: list[str], metrics: list[QuickReference]) -> list[ProcessAlignment]:
    alignment = []
    for process in processes:
        keywords = [k for k in process.lower().split() if len(k) > 2]
        relevant = [
            m.name
            for m in metrics
            if any(k in f"{m.name} {m.when_to_use}".lower() for k in keywords)
        ]
        alignment.append(ProcessAlignment(process=process, relevant_metrics=relevant))
    return alignment


def infer_cadence(when_to_use: str) -> str:
    """Suggest a review cadence from usage text; time words win over activity words."""
    text = when_to_use.lower()
    for pattern, cadence in CADENCE_RULES:
        if pattern.search(text):
            return cadence
    return "As needed"


def usage_guidance(glossary: GlossaryPayload, classification: ClassificationPayload) -> UsageGuidance:
    metrics = glossary.metric_quick_reference
    return UsageGuidance(
        measure_guidance=[
            MeasureGuidance(
                name=m.name,
                when_to_use=m.when_to_use,
                success_indicators=m.success_indicators,
                related_terms=related_terms(m.name, glossary.terms),
            )
            for m in metrics
        ],
        business_process_alignment=process_alignment(classification.business_processes, metrics),
        cadence_recommendations=[
            CadenceRecommendation(metric=m.name, suggested_cadence=infer_cadence(m.when_to_use))
            for m in metrics
        ],
    )


# === Stakeholder context ===


def _role_wants_kind(role: str, kind: str) -> bool:
    if "analyst" in role.lower() and kind == "column":
        return True
    return kind == "measure"


def _role_wants_metric(role: str, metric_name: str) -> bool:
    lower_role = role.lower()
    lower_metric = metric_name.lower()
    if "executive" in lower_role or "ceo" in lower_role or "vp" in lower_role:
        return bool(
            re.match(r"(total|sum|count|average|overall|aggregate|summary)", lower_metric)
            or re.search(r"\b(performance|score|index|ratio)\b", lower_metric)
        )
    if "manager" in lower_role or "director" in lower_role:
        return bool(re.search(r"\b(count|volume|rate|efficiency|utilization)\b", lower_metric))
    if "analyst" in lower_role or "specialist" in lower_role:
        return True
    if "finance" in lower_role or "financial" in lower_role:
        return bool(re.search(r"\b(amount|value|cost|price|margin|revenue|total)\b", lower_metric))
    return bool(re.match(r"(total|count|sum|average)", lower_metric))


def stakeholder_context(
    glossary: GlossaryPayload, classification: ClassificationPayload
) -> dict[str, StakeholderContext]:
    context = {}
    for level, roles in classification.stakeholders.groups().items():
        terms = [
            t.term
            for t in glossary.terms
            if any(
                role.lower() in f"{t.term} {t.definition}".lower() or _role_wants_kind(role, t.kind)
                for role in roles
            )
        ]
        metrics = [
            m.name
            for m in glossary.metric_quick_reference
            if any(
                role.lower() in f"{m.name} {m.when_to_use}".lower() or _role_wants_metric(role, m.name)
                for role in roles
            )
        ]
        context[level] = StakeholderContext(roles=roles, relevant_terms=terms, key_metrics=metrics)
    return context


# === Assembly ===


def attach_insights(report: FinalReport, ctx: PipelineContext) -> FinalReport:
    """Copy of ``report`` with every insight section filled in.

    Args:
        report: Polished report
        ctx: Context holding all stage outputs

    Returns:
        New report; ``report`` is left untouched
    """
    classification = _payload(ctx, "domain_classification", ClassificationPayload)
    glossary = _payload(ctx, "glossary", GlossaryPayload)
    architecture = _payload(ctx, "architecture", ArchitecturePayload)
    analysis = _payload(ctx, "measure_analysis", MeasureAnalysisPayload)
    classification_result = ctx.output("domain_classification")
    domain_confidence = (
        classification_result.confidence
        if classification_result is not None
        else DEFAULT_DOMAIN_CONFIDENCE
    )

    enriched = report.model_copy(deep=True)
    enriched.business_user_guidance = business_user_guidance(glossary, classification)
    enriched.executive_insights = executive_insights(
        classification, domain_confidence, architecture, analysis.analyses
    )
    enriched.improvement_roadmap = improvement_roadmap(architecture, analysis.analyses, glossary)
    enriched.data_lineage = data_lineage(architecture, enriched.relationships)
    enriched.stakeholder_context = stakeholder_context(glossary, classification)
    enriched.overview.usage_guidance = usage_guidance(glossary, classification)

    by_measure = analysis.by_measure()
    for measure in enriched.measures:
        found = by_measure.get(measure.name.lower())
        if found is None or not found.suggested_fixes:
            continue
        measure.enhanced_fixes = enhanced_fixes(found)
        measure.complexity_assessment = ComplexityAssessment(
            level=found.complexity, risks=found.risks
        )
    return enriched
