"""Canonical entities of a parsed BI model.

These records are produced by the normalizer and are the authoritative input
for every later stage. Names are the identity keys and are compared
case-insensitively.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from modeldoc.core.models import Cardinality, CrossFilterDirection, TableRole


class Measure(BaseModel):
    """A named formula over the model."""

    name: str
    expression: str = ""
    display_folder: str = ""
    description: str = ""
    table_name: str = ""
    format_string: str = ""

    @property
    def key(self) -> str:
        return self.name.lower()


class Table(BaseModel):
    """A model table."""

    name: str
    row_count: int = 0
    description: str = ""
    data_category: str = ""
    is_hidden: bool = False
    role: TableRole = TableRole.DIMENSION

    @property
    def key(self) -> str:
        return self.name.lower()


class Column(BaseModel):
    """A table column. Identity is the (table_name, name) pair."""

    table_name: str
    name: str
    data_type: str = "Unknown"
    is_key: bool = False
    is_hidden: bool = False
    description: str = ""
    format_string: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.table_name.lower(), self.name.lower())

    @property
    def ref(self) -> str:
        return f"{self.table_name}[{self.name}]"


class Relationship(BaseModel):
    """A join between two table columns."""

    from_table: str
    from_column: str
    to_table: str
    to_column: str
    cardinality: Cardinality = Cardinality.MANY_TO_ONE
    direction: CrossFilterDirection = CrossFilterDirection.SINGLE
    active: bool = True

    @property
    def from_ref(self) -> str:
        return f"{self.from_table}[{self.from_column}]"

    @property
    def to_ref(self) -> str:
        return f"{self.to_table}[{self.to_column}]"

    def describe(self) -> str:
        arrow = "<->" if self.direction == CrossFilterDirection.BOTH else "->"
        return f"{self.from_ref} {arrow} {self.to_ref}"


class SemanticModel(BaseModel):
    """All parsed entities of one model export."""

    measures: list[Measure] = Field(default_factory=list)
    tables: list[Table] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)

    def column_counts(self) -> dict[str, int]:
        """Count columns per table, keyed by lower-cased table name."""
        counts: dict[str, int] = {}
        for column in self.columns:
            key = column.table_name.lower()
            counts[key] = counts.get(key, 0) + 1
        return counts

    def display_folders(self) -> list[str]:
        """Distinct non-empty display folders in first-seen order."""
        folders: list[str] = []
        for measure in self.measures:
            folder = measure.display_folder.strip()
            if folder and folder not in folders:
                folders.append(folder)
        return folders


class IdMaps(BaseModel):
    """Identifier lookups built while normalizing.

    ``table_ids``/``column_ids`` resolve raw export identifiers (TableID,
    ColumnID) to names. ``tables``/``columns`` map lower-cased identity keys
    to display names and are what integrity checks resolve against.
    """

    table_ids: dict[str, str] = Field(default_factory=dict)
    column_ids: dict[str, tuple[str, str]] = Field(default_factory=dict)
    tables: dict[str, str] = Field(default_factory=dict)
    columns: dict[str, str] = Field(default_factory=dict)

    @staticmethod
    def column_key(table_name: str, column_name: str) -> str:
        return f"{table_name.lower()}|{column_name.lower()}"

    def has_table(self, name: str) -> bool:
        return name.lower() in self.tables

    def has_column(self, table_name: str, column_name: str) -> bool:
        return self.column_key(table_name, column_name) in self.columns


class NormalizationStats(BaseModel):
    """Counters for rows the normalizer could not use."""

    skipped_rows: dict[str, int] = Field(default_factory=dict)
    duplicate_measures: int = 0
    unparsed_relationships: int = 0
    measures_truncated: int = 0

    def record_skip(self, entity: str) -> None:
        self.skipped_rows[entity] = self.skipped_rows.get(entity, 0) + 1

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped_rows.values())


class NormalizedModel(BaseModel):
    """Normalizer output: the model plus the lookups and counters built alongside it."""

    model: SemanticModel
    ids: IdMaps
    stats: NormalizationStats = Field(default_factory=NormalizationStats)
