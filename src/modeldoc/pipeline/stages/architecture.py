"""Data architecture stage."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from modeldoc.core.merge import as_int, as_mapping, as_records, as_text, pick, split_list
from modeldoc.core.models import Cardinality, CrossFilterDirection, SchemaType, TableRole
from modeldoc.model.entities import SemanticModel
from modeldoc.pipeline.base import PipelineContext
from modeldoc.pipeline.models import (
    ArchitectureGovernance,
    ArchitectureOverview,
    ArchitecturePayload,
    ArchitectureRelationship,
    ArchitectureTable,
    LineageEdge,
)
from modeldoc.pipeline.stages.base import BaseStage

MAX_PROMPT_TABLES = 120
MAX_PROMPT_COLUMNS = 300
MAX_PROMPT_RELATIONSHIPS = 200

TABLE_ROLES = frozenset({"fact", "dimension", "bridge", "calendar", "junk", "other"})

_CALENDAR = re.compile(r"calendar|date", re.IGNORECASE)


def infer_schema_type(model: SemanticModel) -> SchemaType:
    """Star, Snowflake or Galaxy from table roles and relationships.

    Several fact tables make a Galaxy. A relationship between two dimension
    tables makes a Snowflake. One fact table with relationships is a Star.
    """
    if not model.relationships:
        return SchemaType.UNKNOWN
    roles = {t.key: t.role for t in model.tables}
    facts = [t for t in model.tables if t.role == TableRole.FACT]
    if len(facts) > 1:
        return SchemaType.GALAXY
    for rel in model.relationships:
        if (
            roles.get(rel.from_table.lower()) == TableRole.DIMENSION
            and roles.get(rel.to_table.lower()) == TableRole.DIMENSION
        ):
            return SchemaType.SNOWFLAKE
    return SchemaType.STAR if facts else SchemaType.UNKNOWN


def _schema_type(value: Any) -> SchemaType:
    text = as_text(value).capitalize()
    try:
        return SchemaType(text)
    except ValueError:
        return SchemaType.UNKNOWN


def _cardinality(value: Any) -> str:
    text = as_text(value)
    for option in Cardinality:
        if option.value.lower() == text.lower():
            return option.value
    return Cardinality.MANY_TO_ONE.value


def _direction(value: Any) -> str:
    if as_text(value).lower() in ("both", "bidirectional", "bothdirections"):
        return CrossFilterDirection.BOTH.value
    return CrossFilterDirection.SINGLE.value


class ArchitectureStage(BaseStage[ArchitecturePayload]):
    """Describe table roles, keys, schema shape and governance."""

    @property
    def name(self) -> str:
        return "architecture"

    @property
    def description(self) -> str:
        return "Table roles, schema type and governance"

    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        model = ctx.model
        counts = model.column_counts()
        tables = [
            {
                "name": t.name,
                "rowCount": t.row_count,
                "columnCount": counts.get(t.key, 0),
                "description": t.description,
                "isHidden": t.is_hidden,
            }
            for t in model.tables[:MAX_PROMPT_TABLES]
        ]
        columns = [
            {
                "table": c.table_name,
                "name": c.name,
                "dataType": c.data_type,
                "isHidden": c.is_hidden,
                "isKey": c.is_key,
            }
            for c in model.columns[:MAX_PROMPT_COLUMNS]
        ]
        relationships = [
            {
                "fromTable": r.from_table,
                "fromColumn": r.from_column,
                "toTable": r.to_table,
                "toColumn": r.to_column,
                "cardinality": r.cardinality.value,
                "direction": r.direction.value,
                "active": r.active,
            }
            for r in model.relationships[:MAX_PROMPT_RELATIONSHIPS]
        ]
        return {
            "domain": ctx.domain,
            "tables": tables,
            "columns": columns,
            "relationships": relationships,
        }

    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> ArchitecturePayload:
        model = ctx.model
        counts = model.column_counts()
        overview = as_mapping(data.get("overview"))
        governance = as_mapping(data.get("governance"))

        tables = []
        for entry in as_records(data.get("tables")):
            name = as_text(entry.get("name"))
            if not name:
                continue
            keys = as_mapping(entry.get("keys"))
            role = as_text(entry.get("role"), "other").lower()
            tables.append(
                ArchitectureTable(
                    name=name,
                    role=role if role in TABLE_ROLES else "other",
                    rows=as_int(pick(entry, "rows", "row_count", "rowCount")),
                    # Column counts come from the parsed model when the table is known.
                    columns=counts.get(name.lower(), as_int(entry.get("columns"))),
                    primary_keys=split_list(pick(keys, "primary") or entry.get("primary_keys")),
                    foreign_keys=split_list(pick(keys, "foreign") or entry.get("foreign_keys")),
                    visibility="hidden" if as_text(entry.get("visibility")).lower() == "hidden" else "visible",
                    summary=as_text(entry.get("summary")),
                )
            )

        relationships = []
        for entry in as_records(data.get("relationships")):
            from_ref = as_text(pick(entry, "from", "from_ref"))
            to_ref = as_text(pick(entry, "to", "to_ref"))
            if not (from_ref and to_ref):
                continue
            relationships.append(
                ArchitectureRelationship(
                    from_ref=from_ref,
                    to_ref=to_ref,
                    cardinality=_cardinality(entry.get("cardinality")),
                    direction=_direction(entry.get("direction")),
                    active=entry.get("active") is not False,
                )
            )

        lineage = [
            LineageEdge(
                source=as_text(e.get("source")),
                target=as_text(e.get("target")),
                via=as_text(e.get("via")),
            )
            for e in as_records(data.get("lineage"))
            if as_text(e.get("source")) and as_text(e.get("target"))
        ]

        return ArchitecturePayload(
            overview=ArchitectureOverview(
                tables=len(model.tables),
                columns=len(model.columns),
                relationships=len(model.relationships),
                schema_type=_schema_type(pick(overview, "schema_type", "schemaType")),
                notes=split_list(overview.get("notes")),
            ),
            tables=tables,
            relationships=relationships,
            lineage=lineage,
            governance=ArchitectureGovernance(
                hidden_tables=split_list(pick(governance, "hidden_tables", "hiddenTables")),
                hidden_columns=split_list(pick(governance, "hidden_columns", "hiddenColumns")),
                data_quality_flags=split_list(
                    pick(governance, "data_quality_flags", "dataQualityFlags")
                ),
                risks=split_list(governance.get("risks")),
            ),
            issues=split_list(data.get("issues")),
        )

    def _fallback(self, ctx: PipelineContext, error: str) -> ArchitecturePayload:
        model = ctx.model
        integrity = ctx.integrity
        counts = model.column_counts()

        tables = []
        for table in model.tables:
            role = table.role.value
            if table.role != TableRole.FACT and _CALENDAR.search(table.name):
                role = "calendar"
            outgoing = [r for r in model.relationships if r.from_table.lower() == table.key]
            tables.append(
                ArchitectureTable(
                    name=table.name,
                    role=role,
                    rows=table.row_count,
                    columns=counts.get(table.key, 0),
                    primary_keys=[
                        c.ref for c in model.columns if c.is_key and c.table_name.lower() == table.key
                    ],
                    foreign_keys=[r.from_ref for r in outgoing],
                    visibility="hidden" if table.is_hidden else "visible",
                    summary=table.description
                    or f"{role.capitalize()} table with {counts.get(table.key, 0)} columns",
                )
            )

        facts = sum(1 for t in model.tables if t.role == TableRole.FACT)
        return ArchitecturePayload(
            overview=ArchitectureOverview(
                tables=len(model.tables),
                columns=len(model.columns),
                relationships=len(model.relationships),
                schema_type=infer_schema_type(model),
                notes=[
                    f"{facts} fact and {len(model.tables) - facts} dimension tables inferred from row counts"
                ],
            ),
            tables=tables,
            relationships=[
                ArchitectureRelationship(
                    from_ref=r.from_ref,
                    to_ref=r.to_ref,
                    cardinality=r.cardinality.value,
                    direction=r.direction.value,
                    active=r.active,
                )
                for r in model.relationships
            ],
            lineage=[
                LineageEdge(source=r.to_table, target=r.from_table, via=r.describe())
                for r in model.relationships
            ],
            governance=ArchitectureGovernance(
                hidden_tables=[t.name for t in model.tables if t.is_hidden],
                hidden_columns=[c.ref for c in model.columns if c.is_hidden],
                data_quality_flags=[f"Duplicate column: {ref}" for ref in integrity.duplicate_columns],
                risks=list(integrity.warnings),
            ),
            issues=list(integrity.issues),
        )
