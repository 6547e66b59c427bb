"""Payload models produced by the pipeline stages.

Each stage coerces whatever the model returned into one of these shapes, so
downstream code never has to inspect raw generated JSON.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from modeldoc.analysis.lint import LintFinding
from modeldoc.core.merge import dedupe
from modeldoc.core.models import Complexity, SchemaType
from modeldoc.report.models import FinalReport

# === Domain classification ===


class ExecutiveSummary(BaseModel):
    purpose: str = ""
    users: list[str] = Field(default_factory=list)
    value: list[str] = Field(default_factory=list)
    decisions: list[str] = Field(default_factory=list)


class StakeholderGroups(BaseModel):
    primary: list[str] = Field(default_factory=list)
    management: list[str] = Field(default_factory=list)
    support: list[str] = Field(default_factory=list)

    def all(self) -> list[str]:
        """Every stakeholder once, primary first."""
        return dedupe([*self.primary, *self.management, *self.support], case_insensitive=True)

    def groups(self) -> dict[str, list[str]]:
        return {"primary": self.primary, "management": self.management, "support": self.support}


class Signals(BaseModel):
    from_measures: list[str] = Field(default_factory=list)
    from_tables: list[str] = Field(default_factory=list)


class ClassificationPayload(BaseModel):
    """Business domain of the model and who uses it."""

    domain: str = "Analytics Model"
    executive_summary: ExecutiveSummary = Field(default_factory=ExecutiveSummary)
    stakeholders: StakeholderGroups = Field(default_factory=StakeholderGroups)
    business_processes: list[str] = Field(default_factory=list)
    signals: Signals = Field(default_factory=Signals)
    notes: list[str] = Field(default_factory=list)


# === Glossary ===


class GlossaryOverview(BaseModel):
    domain: str = ""
    primary_use: str = ""
    stakeholders: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class GlossaryTerm(BaseModel):
    term: str
    kind: str = "concept"  # measure, table, column or concept
    definition: str = ""
    how_to_use: str = ""
    indicators: list[str] = Field(default_factory=list)
    pitfalls: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)


class QuickReference(BaseModel):
    name: str
    definition: str = ""
    when_to_use: str = ""
    success_indicators: list[str] = Field(default_factory=list)


class GlossaryPayload(BaseModel):
    overview: GlossaryOverview = Field(default_factory=GlossaryOverview)
    terms: list[GlossaryTerm] = Field(default_factory=list)
    metric_quick_reference: list[QuickReference] = Field(default_factory=list)


# === Architecture ===


class ArchitectureOverview(BaseModel):
    tables: int = 0
    columns: int = 0
    relationships: int = 0
    schema_type: SchemaType = SchemaType.UNKNOWN
    notes: list[str] = Field(default_factory=list)


class ArchitectureTable(BaseModel):
    name: str
    role: str = "other"  # fact, dimension, bridge, calendar, junk or other
    rows: int = 0
    columns: int = 0
    primary_keys: list[str] = Field(default_factory=list)
    foreign_keys: list[str] = Field(default_factory=list)
    visibility: str = "visible"
    summary: str = ""


class ArchitectureRelationship(BaseModel):
    from_ref: str
    to_ref: str
    cardinality: str = "Many-to-One"
    direction: str = "Single"
    active: bool = True


class LineageEdge(BaseModel):
    source: str
    target: str
    via: str = ""


class ArchitectureGovernance(BaseModel):
    hidden_tables: list[str] = Field(default_factory=list)
    hidden_columns: list[str] = Field(default_factory=list)
    data_quality_flags: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)


class ArchitecturePayload(BaseModel):
    overview: ArchitectureOverview = Field(default_factory=ArchitectureOverview)
    tables: list[ArchitectureTable] = Field(default_factory=list)
    relationships: list[ArchitectureRelationship] = Field(default_factory=list)
    lineage: list[LineageEdge] = Field(default_factory=list)
    governance: ArchitectureGovernance = Field(default_factory=ArchitectureGovernance)
    issues: list[str] = Field(default_factory=list)

    def tables_with_role(self, role: str) -> list[str]:
        return [t.name for t in self.tables if t.role == role]


# === Measure analysis ===


class SuggestedFix(BaseModel):
    title: str
    rationale: str = ""
    fixed_dax: str = ""


class ScenarioCheck(BaseModel):
    scenario: str
    expectation: str = ""


class MeasureAnalysis(BaseModel):
    """Analysis of one measure formula."""

    measure: str
    purpose: str = ""
    formula: str = ""
    dependencies: list[str] = Field(default_factory=list)
    complexity: Complexity = Complexity.MEDIUM
    risks: list[str] = Field(default_factory=list)
    anti_patterns: list[str] = Field(default_factory=list)
    suggested_fixes: list[SuggestedFix] = Field(default_factory=list)
    tests: list[ScenarioCheck] = Field(default_factory=list)
    confidence: float = 0.0
    used_fallback: bool = False


class MeasureAnalysisPayload(BaseModel):
    analyses: list[MeasureAnalysis] = Field(default_factory=list)
    lint_findings: dict[str, list[LintFinding]] = Field(default_factory=dict)
    lint_summary: dict[str, int] = Field(
        default_factory=lambda: {"errors": 0, "warnings": 0, "infos": 0}
    )
    anti_pattern_summary: list[str] = Field(default_factory=list)
    complex_measures: list[str] = Field(default_factory=list)
    skipped_reason: str | None = None

    def by_measure(self) -> dict[str, MeasureAnalysis]:
        index: dict[str, MeasureAnalysis] = {}
        for analysis in self.analyses:
            index.setdefault(analysis.measure.lower(), analysis)
        return index

    def findings_text(self) -> list[str]:
        """One ``Measure: message`` line per lint finding."""
        return [
            f"{measure}: {finding.message}"
            for measure, findings in self.lint_findings.items()
            for finding in findings
        ]


# === Polish ===


class PolishQuality(BaseModel):
    professionalism: float = 0.9
    coverage: float = 0.0
    readability: float = 0.0


class PolishPayload(BaseModel):
    report: FinalReport = Field(default_factory=FinalReport)
    quality: PolishQuality = Field(default_factory=PolishQuality)
    recommendations: list[str] = Field(default_factory=list)
    items_applied: int = 0
