"""Final report data contract.

The report is what every rendering is derived from. All list fields are
always present. Serialized with camelCase keys (``lintFindings``,
``whenToUse``) so the JSON artifact keeps the shape downstream viewers expect.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from modeldoc.core.models import CamelModel, Complexity


class Fix(CamelModel):
    """A suggested formula change."""

    title: str = ""
    rationale: str = ""
    fixed_dax: str = ""


class MeasureTest(CamelModel):
    """A sanity check scenario for a measure."""

    scenario: str = ""
    expectation: str = ""


class EnhancedFix(Fix):
    """A fix annotated with impact and effort estimates."""

    impact: str = "Low"
    implementation_effort: str = "Low"
    business_benefit: str = "Medium"


class ComplexityAssessment(CamelModel):
    level: Complexity = Complexity.MEDIUM
    risks: list[str] = Field(default_factory=list)


class ReportMeasure(CamelModel):
    """One documented measure."""

    name: str
    purpose: str = ""
    formula: str = ""
    complexity: Complexity = Complexity.MEDIUM
    risks: list[str] = Field(default_factory=list)
    fixes: list[Fix] = Field(default_factory=list)
    when_to_use: str = ""
    success_indicators: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    folder: str = ""
    description: str = ""
    format_string: str = ""
    tests: list[MeasureTest] = Field(default_factory=list)
    enhanced_fixes: list[EnhancedFix] = Field(default_factory=list)
    complexity_assessment: ComplexityAssessment | None = None


class ReportTable(CamelModel):
    name: str
    category: str = "Regular"
    columns: int = 0
    summary: str = ""


class ReportRelationship(CamelModel):
    from_ref: str = Field(default="", alias="from")
    to: str = ""
    cardinality: str = "Many-to-One"
    direction: str = "Single"
    active: bool = True


# === Contextual insight sections ===


class GuidanceItem(CamelModel):
    """Usage guidance for either a measure or a stakeholder role."""

    measure: str = ""
    role: str = ""
    guidance: str = ""
    indicators: list[str] = Field(default_factory=list)


class GuidanceSection(CamelModel):
    category: str
    items: list[GuidanceItem] = Field(default_factory=list)


class ExecutiveInsight(CamelModel):
    category: str
    score: float = 0.0
    details: dict[str, str] = Field(default_factory=dict)


class Improvement(CamelModel):
    priority: str
    category: str
    items: list[str] = Field(default_factory=list)


class KeyEntities(CamelModel):
    fact_tables: list[str] = Field(default_factory=list)
    dimension_tables: list[str] = Field(default_factory=list)
    calendar_tables: list[str] = Field(default_factory=list)


class RelationshipPatterns(CamelModel):
    total_relationships: int = 0
    many_to_one: int = 0
    one_to_many: int = 0
    inactive: int = 0


class DataFlow(CamelModel):
    from_ref: str = Field(default="", alias="from")
    to: str = ""
    via: str = "Direct relationship"


class DataLineage(CamelModel):
    key_entities: KeyEntities = Field(default_factory=KeyEntities)
    relationship_patterns: RelationshipPatterns = Field(default_factory=RelationshipPatterns)
    data_flow: list[DataFlow] = Field(default_factory=list)


class MeasureGuidance(CamelModel):
    name: str
    when_to_use: str = ""
    success_indicators: list[str] = Field(default_factory=list)
    related_terms: list[str] = Field(default_factory=list)


class ProcessAlignment(CamelModel):
    process: str
    relevant_metrics: list[str] = Field(default_factory=list)


class CadenceRecommendation(CamelModel):
    metric: str
    suggested_cadence: str = "As needed"


class UsageGuidance(CamelModel):
    measure_guidance: list[MeasureGuidance] = Field(default_factory=list)
    business_process_alignment: list[ProcessAlignment] = Field(default_factory=list)
    cadence_recommendations: list[CadenceRecommendation] = Field(default_factory=list)


class StakeholderContext(CamelModel):
    roles: list[str] = Field(default_factory=list)
    relevant_terms: list[str] = Field(default_factory=list)
    key_metrics: list[str] = Field(default_factory=list)


class Overview(CamelModel):
    domain: str = "Analytics Model"
    tables: int = 0
    measures: int = 0
    relationships: int = 0
    stakeholders: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    usage_guidance: UsageGuidance | None = None


class FinalReport(CamelModel):
    """Canonical documentation report for one model."""

    overview: Overview = Field(default_factory=Overview)
    measures: list[ReportMeasure] = Field(default_factory=list)
    tables: list[ReportTable] = Field(default_factory=list)
    relationships: list[ReportRelationship] = Field(default_factory=list)
    lint_findings: list[str] = Field(default_factory=list)

    business_user_guidance: list[GuidanceSection] = Field(default_factory=list)
    executive_insights: list[ExecutiveInsight] = Field(default_factory=list)
    improvement_roadmap: list[Improvement] = Field(default_factory=list)
    data_lineage: DataLineage | None = None
    stakeholder_context: dict[str, StakeholderContext] = Field(default_factory=dict)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional sections."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def measure_index(self) -> dict[str, ReportMeasure]:
        """Measures keyed by lower-cased name; first occurrence wins."""
        index: dict[str, ReportMeasure] = {}
        for measure in self.measures:
            index.setdefault(measure.name.lower(), measure)
        return index
