"""Tests for contextual insights."""

import pytest

from modeldoc.core.models import Complexity, SchemaType
from modeldoc.pipeline.base import PipelineContext, StageResult
from modeldoc.pipeline.coercion import ReportSources, coerce_report
from modeldoc.pipeline.insights import (
    attach_insights,
    business_user_guidance,
    executive_insights,
    fix_impact,
    implementation_effort,
    improvement_roadmap,
    infer_cadence,
    maturity_score,
    measure_complexity,
    process_alignment,
    related_terms,
    relationship_patterns,
    stakeholder_focus,
)
from modeldoc.pipeline.models import (
    ArchitectureGovernance,
    ArchitectureOverview,
    ArchitecturePayload,
    ClassificationPayload,
    ExecutiveSummary,
    GlossaryPayload,
    GlossaryTerm,
    MeasureAnalysis,
    MeasureAnalysisPayload,
    QuickReference,
    StakeholderGroups,
    SuggestedFix,
)
from modeldoc.report.models import ReportRelationship


def analyses(*levels: Complexity) -> list[MeasureAnalysis]:
    return [MeasureAnalysis(measure=f"M{i}", complexity=c) for i, c in enumerate(levels)]


class TestMeasureComplexity:
    def test_no_analyses(self):
        assert measure_complexity([]) == "Medium"

    def test_high(self):
        assert measure_complexity(analyses(Complexity.COMPLEX, Complexity.SIMPLE)) == "High"

    def test_low(self):
        levels = [Complexity.SIMPLE] * 7 + [Complexity.MEDIUM] * 3
        assert measure_complexity(analyses(*levels)) == "Low"

    def test_medium(self):
        assert measure_complexity(analyses(Complexity.MEDIUM, Complexity.SIMPLE)) == "Medium"


class TestMaturityScore:
    def test_star_clean_simple(self):
        assert maturity_score(SchemaType.STAR, 0, "Low") == pytest.approx(0.9)

    def test_issue_penalty_capped(self):
        assert maturity_score(SchemaType.UNKNOWN, 10, "High") == pytest.approx(0.45)

    def test_bounds(self):
        assert maturity_score(SchemaType.UNKNOWN, 100, "High") >= 0.4
        assert maturity_score(SchemaType.STAR, 0, "Low") <= 0.95


class TestExecutiveInsights:
    def test_categories_and_details(self):
        classification = ClassificationPayload(
            domain="Retail",
            executive_summary=ExecutiveSummary(purpose="Store sales"),
            stakeholders=StakeholderGroups(primary=["Analysts", "Store Managers"], management=["CFO"]),
        )
        architecture = ArchitecturePayload(
            overview=ArchitectureOverview(schema_type=SchemaType.STAR),
            governance=ArchitectureGovernance(risks=["Bidirectional filter"]),
        )

        maturity, readiness = executive_insights(classification, 0.9, architecture, [])

        assert maturity.category == "Model Maturity"
        assert maturity.details["architecture"] == "Star"
        assert maturity.details["governanceHealth"] == "1 issue identified"
        assert maturity.details["measureComplexity"] == "Medium"
        assert readiness.category == "Business Readiness"
        assert readiness.details["domainClarity"] == "High"
        assert readiness.details["stakeholderAlignment"] == "3 stakeholder groups identified"
        assert readiness.details["businessContext"] == "Store sales"
        assert readiness.score == pytest.approx(min(0.95, 0.9 * 0.7 + 3 / 8 * 0.3))

    def test_low_clarity_without_stakeholders(self):
        _, readiness = executive_insights(ClassificationPayload(), 0.3, ArchitecturePayload(), [])

        assert readiness.details["domainClarity"] == "Low"
        assert readiness.details["stakeholderAlignment"] == "No stakeholders identified"


class TestGuidance:
    def test_stakeholder_focus(self):
        assert stakeholder_focus("Sales Manager").startswith("Operational")
        assert stakeholder_focus("CEO").startswith("High-level")
        assert stakeholder_focus("Data Analyst").startswith("Detailed")
        assert stakeholder_focus("Warehouse Staff") == "Core business metrics relevant to role"

    def test_general_guidance_when_empty(self):
        sections = business_user_guidance(GlossaryPayload(), ClassificationPayload())

        assert [s.category for s in sections] == ["General Guidance"]
        assert sections[0].items[0].role == "All Users"

    def test_usage_and_focus_sections(self):
        glossary = GlossaryPayload(metric_quick_reference=[QuickReference(name="Total Sales")])
        classification = ClassificationPayload(
            stakeholders=StakeholderGroups(primary=["A", "B", "C", "D"])
        )

        sections = business_user_guidance(glossary, classification)

        assert [s.category for s in sections] == ["Metric Usage Patterns", "Stakeholder Focus Areas"]
        assert sections[0].items[0].guidance == "Use as needed"
        assert len(sections[1].items) == 3


class TestRoadmap:
    def test_sections_by_priority(self):
        architecture = ArchitecturePayload(
            issues=["Orphan relationship"],
            governance=ArchitectureGovernance(risks=["Bidirectional filter"]),
        )
        found = [
            MeasureAnalysis(
                measure="Ratio",
                suggested_fixes=[SuggestedFix(title="Use DIVIDE", rationale="Avoids errors")],
            )
        ]
        glossary = GlossaryPayload(terms=[GlossaryTerm(term="Churn", definition="")])

        roadmap = improvement_roadmap(architecture, found, glossary)

        assert [(i.priority, i.category) for i in roadmap] == [
            ("High", "Data Architecture"),
            ("Medium", "DAX Formula Optimization"),
            ("Low", "Business Documentation"),
        ]
        assert roadmap[0].items == ["Orphan relationship", "Bidirectional filter"]
        assert roadmap[1].items == ["Use DIVIDE: Avoids errors"]
        assert roadmap[2].items == ["Complete definitions for 1 business terms"]

    def test_empty(self):
        assert improvement_roadmap(ArchitecturePayload(), [], GlossaryPayload()) == []


class TestFixAnnotations:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Optimize iteration", "High"),
            ("Replace division", "Medium"),
            ("Rename measure", "Low"),
        ],
    )
    def test_impact(self, title, expected):
        assert fix_impact(title) == expected

    def test_effort(self):
        assert implementation_effort("") == "Low"
        assert implementation_effort("DIVIDE([A], [B])") == "Low"
        assert implementation_effort("VAR x = CALCULATE([A], FILTER(T, T[C] > 0)) RETURN x") == "Medium"
        assert implementation_effort("x" * 301) == "High"


class TestUsageGuidance:
    @pytest.mark.parametrize(
        "text,cadence",
        [
            ("Check daily during the weekly review", "Daily"),
            ("Use in the quarterly business review", "Quarterly"),
            ("Use in budget planning", "Monthly"),
            ("Use in the team meeting", "Weekly"),
            ("Use for board packs", "Quarterly"),
            ("Use whenever", "As needed"),
        ],
    )
    def test_infer_cadence(self, text, cadence):
        assert infer_cadence(text) == cadence

    def test_related_terms(self):
        terms = [
            GlossaryTerm(term="Sales Amount"),
            GlossaryTerm(term="Returns", related=["Total Sales"]),
            GlossaryTerm(term="Customer"),
        ]

        assert related_terms("Total Sales", terms) == ["Returns"]
        assert related_terms("Sales Growth", terms) == ["Sales Amount"]

    def test_process_alignment(self):
        metrics = [
            QuickReference(name="Total Sales", when_to_use="Sales pipeline reviews"),
            QuickReference(name="Headcount"),
        ]

        alignment = process_alignment(["Sales Performance"], metrics)

        assert alignment[0].process == "Sales Performance"
        assert alignment[0].relevant_metrics == ["Total Sales"]


class TestRelationshipPatterns:
    def test_counts(self):
        patterns = relationship_patterns(
            [
                ReportRelationship(from_ref="A[x]", to="B[x]"),
                ReportRelationship(from_ref="B[y]", to="C[y]", cardinality="One-to-Many", active=False),
            ]
        )

        assert patterns.total_relationships == 2
        assert patterns.many_to_one == 1
        assert patterns.one_to_many == 1
        assert patterns.inactive == 1


class TestAttachInsights:
    def test_fills_every_section(self, sample_context: PipelineContext):
        analysis = MeasureAnalysisPayload(
            analyses=[
                MeasureAnalysis(
                    measure="Total Sales",
                    complexity=Complexity.SIMPLE,
                    risks=["Slow on large models"],
                    suggested_fixes=[SuggestedFix(title="Optimize filter", fixed_dax="[Base]")],
                )
            ]
        )
        ctx = sample_context.with_output(StageResult.succeeded("measure_analysis", analysis, 0.9))
        report = coerce_report({}, ReportSources.from_context(ctx))

        enriched = attach_insights(report, ctx)

        assert enriched.business_user_guidance
        assert [i.category for i in enriched.executive_insights] == [
            "Model Maturity",
            "Business Readiness",
        ]
        assert enriched.data_lineage is not None
        assert enriched.data_lineage.relationship_patterns.total_relationships == 2
        assert set(enriched.stakeholder_context) == {"primary", "management", "support"}
        assert enriched.overview.usage_guidance is not None

        fixes = enriched.measures[0].enhanced_fixes
        assert fixes[0].impact == "High"
        assert fixes[0].business_benefit == "High"
        assert enriched.measures[0].complexity_assessment.level == Complexity.SIMPLE
        assert enriched.measures[1].enhanced_fixes == []
        assert report.business_user_guidance == []

    def test_missing_classification_uses_default_confidence(self, sample_context: PipelineContext):
        report = coerce_report({}, ReportSources.from_context(sample_context))

        enriched = attach_insights(report, sample_context)

        readiness = enriched.executive_insights[1]
        assert readiness.details["domainClarity"] == "Low"
        assert readiness.score == pytest.approx(0.5 * 0.7)
