"""Accepted column-name synonyms per canonical field.

Exports from different tools name the same attribute differently (``Name``,
``MeasureName``, ``Measure``...). Each canonical field declares its ordered
candidate list here, and ``lookup`` is the single place that resolves them.
The canonical snake_case name always comes first so that already-normalized
records resolve to themselves.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

MEASURE_FIELDS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name", "MeasureName", "measureName", "Measure", "measure"),
    "expression": (
        "expression",
        "Expression",
        "Formula",
        "formula",
        "DAX",
        "dax",
        "DAXExpression",
        "Definition",
        "definition",
    ),
    "description": ("description", "Description", "Comment", "Comments", "Notes"),
    "display_folder": ("display_folder", "DisplayFolder", "Folder", "Category"),
    "table_name": ("table_name", "Table", "TableName", "tableName", "Parent", "parent"),
    "table_id": ("TableID", "TableId", "table_id"),
    "format_string": ("format_string", "FormatString", "Format", "DisplayFormat"),
}

TABLE_FIELDS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name", "TableName", "Table"),
    "id": ("ID", "Id", "TableID", "TableId"),
    "row_count": ("row_count", "RowCount", "Rows", "RowsCount"),
    "description": ("description", "Description", "Comment"),
    "data_category": ("data_category", "DataCategory", "Category", "Type", "Kind"),
    "is_hidden": ("is_hidden", "IsHidden", "Hidden"),
    "is_visible": ("IsVisible", "Visible"),
}

COLUMN_FIELDS: dict[str, tuple[str, ...]] = {
    "name": ("name", "Name", "ColumnName", "ExplicitName", "InferredName", "Column"),
    "id": ("ID", "Id", "ColumnID", "ColumnId"),
    "table_name": ("table_name", "Table", "TableName", "ParentTable"),
    "table_id": ("TableID", "TableId"),
    "data_type": ("data_type", "DataType", "Type", "ColumnType", "FieldType"),
    "is_key": ("is_key", "IsKey", "Key"),
    "is_hidden": ("is_hidden", "IsHidden", "Hidden"),
    "is_visible": ("IsVisible", "Visible"),
    "description": ("description", "Description", "Comment"),
    "format_string": ("format_string", "FormatString", "Format", "DisplayFormat", "NumberFormat"),
}

RELATIONSHIP_FIELDS: dict[str, tuple[str, ...]] = {
    "relationship": ("Relationship", "RelationshipString", "Definition"),
    "from_table": ("from_table", "FromTable", "FromTableName", "TableFrom", "Table1"),
    "from_table_id": ("FromTableID", "FromTableId"),
    "from_column": ("from_column", "FromColumn", "FromColumnName", "ColumnFrom", "Column1"),
    "from_column_id": ("FromColumnID", "FromColumnId"),
    "to_table": ("to_table", "ToTable", "ToTableName", "TableTo", "Table2"),
    "to_table_id": ("ToTableID", "ToTableId"),
    "to_column": ("to_column", "ToColumn", "ToColumnName", "ColumnTo", "Column2"),
    "to_column_id": ("ToColumnID", "ToColumnId"),
    "cardinality": ("cardinality", "Cardinality"),
    "from_cardinality": ("FromCardinality",),
    "to_cardinality": ("ToCardinality",),
    "direction": (
        "direction",
        "Direction",
        "CrossFilterDirection",
        "CrossFilteringBehavior",
    ),
    "active": ("active", "IsActive", "Active"),
}


def lookup(row: Mapping[str, Any], candidates: Sequence[str]) -> str:
    """Return the first non-empty value among candidate keys.

    Exact key matches are tried first, then case-insensitive ones.

    Args:
        row: Raw record
        candidates: Ordered candidate key names

    Returns:
        The stripped string value, or "" when no candidate carries a value
    """
    for key in candidates:
        text = _text(row.get(key))
        if text:
            return text

    lowered = {str(k).lower(): v for k, v in row.items()}
    for key in candidates:
        text = _text(lowered.get(key.lower()))
        if text:
            return text
    return ""


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip()
