"""Markdown and CSV views of a final report.

Both views are derived from the report alone, so rendering the same report
twice gives the same text apart from the generation timestamp.
"""

from __future__ import annotations

import csv
import io
import re
from datetime import UTC, datetime

from modeldoc.report.models import FinalReport, ReportMeasure

CSV_HEADER = ["Category", "Name", "Detail1", "Detail2", "Detail3"]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def title_case(key: str) -> str:
    """``governanceHealth`` -> ``Governance Health``."""
    words = _CAMEL_BOUNDARY.sub(" ", key).split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _percent(score: float) -> str:
    return f"{round(score * 100)}%"


def _measure_section(measure: ReportMeasure) -> list[str]:
    lines = [f"### {measure.name}", ""]
    if measure.purpose:
        lines.append(f"**Purpose:** {measure.purpose}")
    if measure.when_to_use:
        lines.append(f"**When to use:** {measure.when_to_use}")
    lines.extend(["", "```dax", measure.formula, "```", ""])
    lines.append(f"**Complexity:** {measure.complexity.value}")
    if measure.risks:
        lines.append(f"**Risks:** {'; '.join(measure.risks)}")
    if measure.fixes:
        lines.extend(["", "**Suggested Fixes:**", ""])
        for fix in measure.fixes:
            title = f"- **{fix.title}**"
            lines.append(f"{title}: {fix.rationale}" if fix.rationale else title)
            if fix.fixed_dax:
                lines.extend(["", "```dax", fix.fixed_dax, "```", ""])
    lines.append("")
    return lines


def render_markdown(report: FinalReport, generated_at: datetime | None = None) -> str:
    """Render the executive overview document."""
    generated_at = generated_at or datetime.now(UTC)
    overview = report.overview

    lines = [
        "# Power BI Model - Executive Overview",
        "",
        f"- **Domain:** {overview.domain}",
        f"- **Tables:** {overview.tables}",
        f"- **Measures:** {overview.measures}",
        f"- **Relationships:** {overview.relationships}",
    ]
    if overview.stakeholders:
        lines.append(f"- **Stakeholders:** {', '.join(overview.stakeholders)}")
    lines.append("")

    if overview.notes:
        lines.extend(["## Notes", ""])
        lines.extend(f"- {note}" for note in overview.notes)
        lines.append("")

    if report.measures:
        lines.extend(["## Key Measures", ""])
        for measure in report.measures:
            lines.extend(_measure_section(measure))

    if report.tables:
        lines.extend(["## Tables", ""])
        for table in report.tables:
            entry = f"- **{table.name}** ({table.category}, {table.columns} cols)"
            lines.append(f"{entry} - {table.summary}" if table.summary else entry)
        lines.append("")

    if report.relationships:
        lines.extend(["## Relationships", ""])
        for rel in report.relationships:
            entry = f"- {rel.from_ref} -> {rel.to} ({rel.cardinality}, {rel.direction})"
            lines.append(entry if rel.active else f"{entry} **[INACTIVE]**")
        lines.append("")

    if report.lint_findings:
        lines.extend(["## Lint Findings", ""])
        lines.extend(f"- {finding}" for finding in report.lint_findings)
        lines.append("")

    if report.executive_insights:
        lines.extend(["## Executive Summary", ""])
        for insight in report.executive_insights:
            lines.extend([f"### {insight.category} ({_percent(insight.score)})", ""])
            lines.extend(f"- **{title_case(k)}:** {v}" for k, v in insight.details.items())
            lines.append("")

    if report.improvement_roadmap:
        lines.extend(["## Improvement Recommendations", ""])
        for improvement in report.improvement_roadmap:
            lines.extend([f"### {improvement.category} ({improvement.priority} Priority)", ""])
            lines.extend(f"- {item}" for item in improvement.items)
            lines.append("")

    lineage = report.data_lineage
    if lineage and (lineage.key_entities.fact_tables or lineage.key_entities.dimension_tables):
        lines.extend(["## Data Architecture", ""])
        if lineage.key_entities.fact_tables:
            lines.append(f"**Fact Tables:** {', '.join(lineage.key_entities.fact_tables)}")
        if lineage.key_entities.dimension_tables:
            lines.append(
                f"**Dimension Tables:** {', '.join(lineage.key_entities.dimension_tables)}"
            )
        lines.append("")

    if report.business_user_guidance:
        lines.extend(["## Business User Guidance", ""])
        for section in report.business_user_guidance:
            lines.extend([f"### {section.category}", ""])
            for item in section.items:
                label = f"**{item.measure or item.role}**"
                lines.append(f"- {label}: {item.guidance}")
                if item.indicators:
                    lines.append(f"  - Success indicators: {', '.join(item.indicators)}")
            lines.append("")

    analyzed = sum(1 for m in report.measures if m.purpose)
    lines.extend(
        [
            "---",
            "",
            "### Generation Info",
            "",
            f"- **Generated:** {generated_at.isoformat()}",
            f"- **Analysis Scope:** {analyzed} of {overview.measures} measures analyzed",
            f"- **Model Components:** {overview.tables} tables, "
            f"{overview.measures} measures, {overview.relationships} relationships",
            "",
        ]
    )
    return "\n".join(lines)


def kpi_rows(report: FinalReport) -> list[list[str]]:
    """Flatten the report into five-column KPI rows."""
    overview = report.overview
    rows = [
        ["Overview", "Domain", overview.domain, "", ""],
        [
            "Overview",
            "Counts",
            f"Tables:{overview.tables}",
            f"Measures:{overview.measures}",
            f"Relationships:{overview.relationships}",
        ],
    ]
    for m in report.measures:
        rows.append(
            [
                "Measure",
                m.name,
                m.purpose,
                f"Complexity:{m.complexity.value}",
                f"Risks:{' | '.join(m.risks)}",
            ]
        )
    for t in report.tables:
        rows.append(["Table", t.name, t.category, f"Columns:{t.columns}", t.summary])
    for r in report.relationships:
        rows.append(["Relationship", f"{r.from_ref}→{r.to}", r.cardinality, r.direction, ""])
    for finding in report.lint_findings:
        rows.append(["LintFinding", "", finding, "", ""])

    for insight in report.executive_insights:
        rows.append(["ExecutiveInsight", insight.category, f"Score:{_percent(insight.score)}", "", ""])
        for key, value in insight.details.items():
            rows.append(["ExecutiveDetail", key, value, "", ""])
    for improvement in report.improvement_roadmap:
        rows.append(["Improvement", improvement.category, f"Priority:{improvement.priority}", "", ""])
        for item in improvement.items:
            rows.append(["ImprovementItem", "", item, "", ""])

    if report.data_lineage:
        entities = report.data_lineage.key_entities
        rows.extend(["Architecture", "FactTable", t, "", ""] for t in entities.fact_tables)
        rows.extend(["Architecture", "DimensionTable", t, "", ""] for t in entities.dimension_tables)

    for section in report.business_user_guidance:
        rows.append(["BusinessGuidance", section.category, "", "", ""])
        for item in section.items:
            rows.append(["GuidanceItem", item.measure or item.role, item.guidance, "", ""])
    return rows


def render_csv(report: FinalReport) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(kpi_rows(report))
    return buffer.getvalue()
