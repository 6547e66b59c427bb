"""Tests for the markdown and CSV report views."""

import csv
import io
from datetime import UTC, datetime

import pytest

from modeldoc.core.models import Complexity
from modeldoc.report.models import (
    DataLineage,
    ExecutiveInsight,
    FinalReport,
    Fix,
    Improvement,
    KeyEntities,
    Overview,
    ReportMeasure,
    ReportRelationship,
    ReportTable,
)
from modeldoc.report.render import CSV_HEADER, kpi_rows, render_csv, render_markdown, title_case

GENERATED_AT = datetime(2026, 1, 15, 9, 30, tzinfo=UTC)


@pytest.fixture
def report() -> FinalReport:
    return FinalReport(
        overview=Overview(
            domain="Sales Analytics",
            tables=2,
            measures=2,
            relationships=2,
            stakeholders=["Sales Managers"],
            notes=["Covers store sales."],
        ),
        measures=[
            ReportMeasure(
                name="Total Sales",
                purpose="Sum of sales amount.",
                formula="SUM(Sales[Amount])",
                complexity=Complexity.SIMPLE,
            ),
            ReportMeasure(
                name="Margin %",
                formula="[Profit] / [Revenue]",
                risks=["Division by zero"],
                fixes=[
                    Fix(
                        title="Use DIVIDE",
                        rationale="Handles blanks",
                        fixed_dax="DIVIDE([Profit], [Revenue])",
                    )
                ],
            ),
        ],
        tables=[
            ReportTable(name="Sales", category="Fact", columns=3, summary="Order lines"),
            ReportTable(name="Customer", category="Dimension", columns=2),
        ],
        relationships=[
            ReportRelationship(from_ref="Sales[CustomerID]", to="Customer[CustomerID]"),
            ReportRelationship(from_ref="Sales[ShipDate]", to="Calendar[Date]", active=False),
        ],
        lint_findings=["Margin %: Use DIVIDE instead of the / operator"],
        executive_insights=[
            ExecutiveInsight(
                category="Model Complexity", score=0.5, details={"averageComplexity": "Medium"}
            )
        ],
        improvement_roadmap=[
            Improvement(priority="High", category="Formula Fixes", items=["Replace / with DIVIDE"])
        ],
        data_lineage=DataLineage(
            key_entities=KeyEntities(fact_tables=["Sales"], dimension_tables=["Customer"])
        ),
    )


class TestTitleCase:
    @pytest.mark.parametrize(
        "key,expected",
        [
            ("governanceHealth", "Governance Health"),
            ("averageComplexity", "Average Complexity"),
            ("domain", "Domain"),
            ("", ""),
        ],
    )
    def test_title_case(self, key, expected):
        assert title_case(key) == expected


class TestRenderMarkdown:
    def test_sections(self, report: FinalReport):
        text = render_markdown(report, GENERATED_AT)

        assert text.startswith("# Power BI Model - Executive Overview")
        for heading in (
            "## Notes",
            "## Key Measures",
            "## Tables",
            "## Relationships",
            "## Lint Findings",
            "## Executive Summary",
            "## Improvement Recommendations",
            "## Data Architecture",
            "### Generation Info",
        ):
            assert heading in text

    def test_overview_and_measures(self, report: FinalReport):
        text = render_markdown(report, GENERATED_AT)

        assert "- **Domain:** Sales Analytics" in text
        assert "- **Stakeholders:** Sales Managers" in text
        assert "### Margin %" in text
        assert "```dax\n[Profit] / [Revenue]\n```" in text
        assert "- **Use DIVIDE**: Handles blanks" in text
        assert "**Risks:** Division by zero" in text

    def test_inactive_relationship_is_marked(self, report: FinalReport):
        lines = render_markdown(report, GENERATED_AT).splitlines()

        inactive = [line for line in lines if "Calendar[Date]" in line]
        active = [line for line in lines if "Customer[CustomerID]" in line]
        assert inactive and inactive[0].endswith("**[INACTIVE]**")
        assert active and "INACTIVE" not in active[0]

    def test_insight_details_are_title_cased(self, report: FinalReport):
        text = render_markdown(report, GENERATED_AT)

        assert "### Model Complexity (50%)" in text
        assert "- **Average Complexity:** Medium" in text
        assert "### Formula Fixes (High Priority)" in text

    def test_generation_info(self, report: FinalReport):
        text = render_markdown(report, GENERATED_AT)

        assert GENERATED_AT.isoformat() in text
        assert "1 of 2 measures analyzed" in text

    def test_empty_report_omits_sections(self):
        text = render_markdown(FinalReport(), GENERATED_AT)

        assert "## Key Measures" not in text
        assert "## Relationships" not in text
        assert "## Data Architecture" not in text
        assert "- **Domain:** Analytics Model" in text


class TestKpiRows:
    def test_overview_rows_first(self, report: FinalReport):
        rows = kpi_rows(report)

        assert rows[0] == ["Overview", "Domain", "Sales Analytics", "", ""]
        assert rows[1] == ["Overview", "Counts", "Tables:2", "Measures:2", "Relationships:2"]

    def test_every_row_has_five_columns(self, report: FinalReport):
        assert all(len(row) == len(CSV_HEADER) for row in kpi_rows(report))

    def test_entity_rows(self, report: FinalReport):
        rows = kpi_rows(report)

        assert ["Measure", "Margin %", "", "Complexity:medium", "Risks:Division by zero"] in rows
        assert ["Table", "Sales", "Fact", "Columns:3", "Order lines"] in rows
        assert [
            "Relationship",
            "Sales[CustomerID]→Customer[CustomerID]",
            "Many-to-One",
            "Single",
            "",
        ] in rows
        assert ["Architecture", "FactTable", "Sales", "", ""] in rows
        assert ["ImprovementItem", "", "Replace / with DIVIDE", "", ""] in rows

    def test_render_csv_parses_back(self, report: FinalReport):
        parsed = list(csv.reader(io.StringIO(render_csv(report))))

        assert parsed[0] == ["Category", "Name", "Detail1", "Detail2", "Detail3"]
        assert parsed[1:] == kpi_rows(report)
