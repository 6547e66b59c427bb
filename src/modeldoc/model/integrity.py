"""Cross-reference checks over a normalized model.

Dangling references and duplicates are reported as data. Nothing here raises
for a bad model and nothing mutates its input.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from modeldoc.core.models import Cardinality
from modeldoc.model.entities import Column, IdMaps, SemanticModel


class IntegritySummary(BaseModel):
    """Counts per integrity finding category."""

    unknown_tables: int = 0
    unknown_columns: int = 0
    many_to_many: int = 0
    inactive: int = 0
    duplicate_columns: int = 0


class IntegrityReport(BaseModel):
    """Result of checking a model's internal references."""

    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    duplicate_columns: list[str] = Field(default_factory=list)
    summary: IntegritySummary = Field(default_factory=IntegritySummary)

    @property
    def ok(self) -> bool:
        return not self.issues


def _ids_for(model: SemanticModel) -> IdMaps:
    ids = IdMaps()
    for table in model.tables:
        ids.tables.setdefault(table.key, table.name)
    for column in model.columns:
        ids.columns.setdefault(IdMaps.column_key(column.table_name, column.name), column.ref)
    return ids


def find_duplicate_columns(columns: list[Column]) -> list[str]:
    """Return ``Table[Column]`` for every (table, column) pair seen more than once."""
    seen: dict[tuple[str, str], int] = {}
    duplicates: list[str] = []
    for column in columns:
        count = seen.get(column.key, 0) + 1
        seen[column.key] = count
        if count == 2:
            duplicates.append(column.ref)
    return duplicates


def check_integrity(model: SemanticModel, ids: IdMaps | None = None) -> IntegrityReport:
    """Check relationships and columns against the known tables and columns.

    A relationship whose table cannot be resolved yields exactly one unknown
    table issue; column references are only checked once both tables resolve.

    Args:
        model: Normalized model
        ids: Lookups built during normalization; rebuilt from the model when omitted

    Returns:
        IntegrityReport with issues, warnings and summary counts
    """
    ids = ids or _ids_for(model)
    report = IntegrityReport()
    summary = report.summary

    for rel in model.relationships:
        label = f"{rel.from_ref} → {rel.to_ref}"
        if not (ids.has_table(rel.from_table) and ids.has_table(rel.to_table)):
            summary.unknown_tables += 1
            report.issues.append(f"Unknown table in relationship: {label}")
        elif not (
            ids.has_column(rel.from_table, rel.from_column)
            and ids.has_column(rel.to_table, rel.to_column)
        ):
            summary.unknown_columns += 1
            report.issues.append(f"Unknown column in relationship: {label}")

        if rel.cardinality == Cardinality.MANY_TO_MANY:
            summary.many_to_many += 1
            report.warnings.append(f"Many-to-Many: {rel.from_ref} ↔ {rel.to_ref}")
        if not rel.active:
            summary.inactive += 1
            report.warnings.append(f"Inactive relationship: {label}")

    report.duplicate_columns = find_duplicate_columns(model.columns)
    summary.duplicate_columns = len(report.duplicate_columns)
    return report
