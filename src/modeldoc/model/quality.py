"""Data quality assessment and the ingestion summary."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from modeldoc.model.entities import SemanticModel
from modeldoc.model.integrity import IntegrityReport

if TYPE_CHECKING:
    from modeldoc.sources.csv.discovery import FileDiscovery

ADVANCED_DAX = re.compile(
    r"\b(CALCULATE|SUMX|AVERAGEX|FILTER|VAR|RETURN|RANKX|TREATAS)\b", re.IGNORECASE
)
TIME_INTELLIGENCE = re.compile(
    r"\b(DATESINPERIOD|TOTALYTD|SAMEPERIODLASTYEAR|DATEADD|DATESMTD|DATESQTD)\b", re.IGNORECASE
)


class Completeness(BaseModel):
    measures: float = 1.0
    measure_descriptions: float = 0.0
    tables: float = 1.0
    columns: float = 1.0
    relationships: float = 1.0


class ComplexityCounts(BaseModel):
    advanced_dax: int = 0
    time_intelligence: int = 0


class Governance(BaseModel):
    display_folders: int = 0
    hidden_tables: int = 0
    hidden_columns: int = 0


class DataQuality(BaseModel):
    """Ratios and counts describing how complete and complex the export is."""

    found_files: list[str] = Field(default_factory=list)
    missing_files: list[str] = Field(default_factory=list)
    completeness: Completeness = Field(default_factory=Completeness)
    complexity: ComplexityCounts = Field(default_factory=ComplexityCounts)
    governance: Governance = Field(default_factory=Governance)


def _ratio(matching: int, total: int, empty: float = 1.0) -> float:
    return matching / total if total else empty


def assess_data_quality(model: SemanticModel, discovery: FileDiscovery | None = None) -> DataQuality:
    """Assess completeness, complexity and governance of a normalized model."""
    measures, tables, columns = model.measures, model.tables, model.columns
    relationships = model.relationships

    completeness = Completeness(
        measures=_ratio(sum(1 for m in measures if m.name and m.expression), len(measures)),
        measure_descriptions=_ratio(sum(1 for m in measures if m.description), len(measures), 0.0),
        tables=_ratio(sum(1 for t in tables if t.name), len(tables)),
        columns=_ratio(sum(1 for c in columns if c.table_name and c.name), len(columns)),
        relationships=_ratio(
            sum(1 for r in relationships if r.from_table and r.from_column and r.to_table and r.to_column),
            len(relationships),
        ),
    )
    return DataQuality(
        found_files=discovery.found if discovery else [],
        missing_files=discovery.missing if discovery else [],
        completeness=completeness,
        complexity=ComplexityCounts(
            advanced_dax=sum(1 for m in measures if ADVANCED_DAX.search(m.expression)),
            time_intelligence=sum(1 for m in measures if TIME_INTELLIGENCE.search(m.expression)),
        ),
        governance=Governance(
            display_folders=len(model.display_folders()),
            hidden_tables=sum(1 for t in tables if t.is_hidden),
            hidden_columns=sum(1 for c in columns if c.is_hidden),
        ),
    )


def ingestion_summary(
    model: SemanticModel,
    integrity: IntegrityReport,
    discovery: FileDiscovery | None = None,
    fact_row_threshold: int = 10_000,
) -> str:
    """Render a plain-text summary of what was ingested."""
    found = ", ".join(discovery.found) if discovery and discovery.found else "None"
    missing = ", ".join(discovery.missing) if discovery and discovery.missing else "None"
    complex_count = sum(1 for m in model.measures if ADVANCED_DAX.search(m.expression))
    fact_count = sum(1 for t in model.tables if t.row_count > fact_row_threshold)
    dim_count = max(0, len(model.tables) - fact_count)
    s = integrity.summary

    return "\n".join(
        [
            "DATA INGESTION COMPLETE",
            "",
            f"Files Processed: {found}",
            f"Missing Files: {missing}",
            "",
            "Data Summary:",
            f"- Measures: {len(model.measures)} (complex: {complex_count})",
            f"- Tables: {len(model.tables)} (approx {fact_count} fact / {dim_count} dimension)",
            f"- Columns: {len(model.columns)}",
            f"- Relationships: {len(model.relationships)}",
            "",
            "Integrity:",
            f"- Unknown tables in relationships: {s.unknown_tables}",
            f"- Unknown columns in relationships: {s.unknown_columns}",
            f"- Many-to-Many relationships: {s.many_to_many}",
            f"- Inactive relationships: {s.inactive}",
            f"- Duplicate columns: {s.duplicate_columns}",
        ]
    )
