"""Normalize raw export rows into canonical model entities.

Rows come from loosely-structured CSV exports whose column names vary by tool.
Every field is resolved through the synonym lists in ``synonyms``; missing
attributes are inferred from naming heuristics. Rows that lack an identity
field are skipped and counted, never raised.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from modeldoc.analysis.formats import infer_format_string, infer_table_role
from modeldoc.core.logging import get_logger
from modeldoc.core.models import Cardinality, CrossFilterDirection
from modeldoc.model.entities import (
    Column,
    IdMaps,
    Measure,
    NormalizationStats,
    NormalizedModel,
    Relationship,
    SemanticModel,
    Table,
)
from modeldoc.sources.csv.synonyms import (
    COLUMN_FIELDS,
    MEASURE_FIELDS,
    RELATIONSHIP_FIELDS,
    TABLE_FIELDS,
    lookup,
)

logger = get_logger(__name__)

Row = Mapping[str, Any]

TRUE_VALUES = frozenset({"true", "1", "yes", "y", "on", "enabled"})
FALSE_VALUES = frozenset({"false", "0", "no", "n", "off", "disabled"})

DATA_TYPE_CODES = {
    "1": "String",
    "2": "Integer",
    "3": "Double",
    "4": "Decimal",
    "5": "DateTime",
    "6": "Boolean",
    "7": "Binary",
}

# Metadata tables emitted by INFO.VIEW exports describe the export itself.
_METADATA_TABLE = re.compile(r"^INFO\.VIEW", re.IGNORECASE)

_KEY_WORD = re.compile(r"\b(id|key)\b", re.IGNORECASE)
_KEY_SUFFIX = re.compile(r"(?:[_\s](?:id|key)|(?<=[a-z0-9])(?:ID|Id|Key|KEY))$", re.IGNORECASE)

# 'Table1'[Col1] *[<-]1 'Table2'[Col2]
_RELATIONSHIP_STRING = re.compile(
    r"(?:'?([^'\[\]]+)'?)\[([^\]]+)\]\s*([*\d]*)\s*\[?([<>-]+)\]?\s*([*\d]*)\s*"
    r"(?:'?([^'\[\]]+)'?)\[([^\]]+)\]"
)

_SIDE_CARDINALITY = {
    ("many", "one"): Cardinality.MANY_TO_ONE,
    ("one", "many"): Cardinality.ONE_TO_MANY,
    ("one", "one"): Cardinality.ONE_TO_ONE,
    ("many", "many"): Cardinality.MANY_TO_MANY,
    ("many", None): Cardinality.MANY_TO_ONE,
    (None, "many"): Cardinality.ONE_TO_MANY,
}


def parse_bool(value: Any) -> bool | None:
    """Parse a loosely-typed boolean. Returns None when the value is not recognized."""
    if isinstance(value, bool):
        return value
    text = str(value if value is not None else "").strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return None


def clean_text(value: str) -> str:
    """Trim and remove CSV quoting artifacts.

    A wrapping quote pair is removed only when the inner text holds no
    unescaped quote, so formulas with string literals survive untouched.
    """
    text = value.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        inner = text[1:-1]
        if '"' not in inner.replace('""', ""):
            return inner.replace('""', '"').strip()
    return text


def is_key_column(name: str) -> bool:
    """Heuristic key detection from a column name."""
    return bool(_KEY_WORD.search(name) or _KEY_SUFFIX.search(name))


def _to_int(value: str) -> int:
    text = value.replace(",", "").replace("_", "").strip()
    if not text:
        return 0
    try:
        return int(float(text))
    except ValueError:
        return 0


def _side(value: str) -> str | None:
    text = value.strip().lower()
    if text in {"many", "*", "2"}:
        return "many"
    if text in {"one", "1"}:
        return "one"
    return None


def parse_cardinality(text: str) -> Cardinality | None:
    """Parse a textual cardinality such as ``many-to-one`` or ``m2m``."""
    s = text.strip().lower().replace(" ", "")
    if not s:
        return None
    if "one-to-one" in s or s in {"1:1", "onetoone"}:
        return Cardinality.ONE_TO_ONE
    if "one-to-many" in s or s in {"1:n", "1:*", "onetomany"}:
        return Cardinality.ONE_TO_MANY
    if "many-to-one" in s or s in {"n:1", "*:1", "manytoone"}:
        return Cardinality.MANY_TO_ONE
    if "many-to-many" in s or s in {"m2m", "n:m", "*:*", "manytomany"}:
        return Cardinality.MANY_TO_MANY
    return None


def parse_direction(text: str) -> CrossFilterDirection:
    """Parse a cross-filter direction; numeric behavior codes are accepted."""
    s = text.strip().lower()
    if s in {"2", "both", "bi", "bothdirections"} or "both" in s:
        return CrossFilterDirection.BOTH
    return CrossFilterDirection.SINGLE


def _cardinality_from_markers(left: str, right: str) -> Cardinality:
    left_side = "many" if "*" in left else "one" if "1" in left else None
    right_side = "many" if "*" in right else "one" if "1" in right else None
    return _SIDE_CARDINALITY.get((left_side, right_side), Cardinality.MANY_TO_ONE)


def parse_relationship_string(text: str) -> Relationship | None:
    """Parse the compact relationship notation.

    Example:
        >>> rel = parse_relationship_string("'Sales'[CustomerID] *[<-]1 'Customer'[ID]")
        >>> rel.cardinality.value
        'Many-to-One'
    """
    match = _RELATIONSHIP_STRING.search(text or "")
    if not match:
        return None
    from_table, from_column, left, arrow, right, to_table, to_column = (
        (g or "").strip() for g in match.groups()
    )
    if not (from_table and from_column and to_table and to_column):
        return None
    direction = (
        CrossFilterDirection.BOTH
        if "<" in arrow and ">" in arrow
        else CrossFilterDirection.SINGLE
    )
    return Relationship(
        from_table=from_table,
        from_column=from_column,
        to_table=to_table,
        to_column=to_column,
        cardinality=_cardinality_from_markers(left, right),
        direction=direction,
    )


def build_id_maps(table_rows: Iterable[Row], column_rows: Iterable[Row]) -> IdMaps:
    """Build raw-identifier lookups from table and column rows."""
    ids = IdMaps()
    for row in table_rows:
        raw_id = lookup(row, TABLE_FIELDS["id"])
        name = clean_text(lookup(row, TABLE_FIELDS["name"]))
        if raw_id and name:
            ids.table_ids[raw_id] = name
    for row in column_rows:
        raw_id = lookup(row, COLUMN_FIELDS["id"])
        name = clean_text(lookup(row, COLUMN_FIELDS["name"]))
        table = clean_text(lookup(row, COLUMN_FIELDS["table_name"])) or ids.table_ids.get(
            lookup(row, COLUMN_FIELDS["table_id"]), ""
        )
        if raw_id and name:
            ids.column_ids[raw_id] = (table, name)
    return ids


def normalize_tables(
    rows: Iterable[Row],
    stats: NormalizationStats,
    fact_row_threshold: int = 10_000,
) -> list[Table]:
    """Normalize table rows."""
    tables: list[Table] = []
    for row in rows:
        name = clean_text(lookup(row, TABLE_FIELDS["name"]))
        if not name or _METADATA_TABLE.match(name):
            stats.record_skip("tables")
            continue

        hidden = parse_bool(lookup(row, TABLE_FIELDS["is_hidden"]))
        if hidden is None:
            visible = parse_bool(lookup(row, TABLE_FIELDS["is_visible"]))
            hidden = (not visible) if visible is not None else False

        row_count = _to_int(lookup(row, TABLE_FIELDS["row_count"]))
        tables.append(
            Table(
                name=name,
                row_count=row_count,
                description=clean_text(lookup(row, TABLE_FIELDS["description"])),
                data_category=lookup(row, TABLE_FIELDS["data_category"]),
                is_hidden=hidden,
                role=infer_table_role(row_count, fact_row_threshold),
            )
        )
    return tables


def normalize_columns(rows: Iterable[Row], ids: IdMaps, stats: NormalizationStats) -> list[Column]:
    """Normalize column rows. Duplicate (table, column) pairs are kept for integrity checks."""
    columns: list[Column] = []
    for row in rows:
        name = clean_text(lookup(row, COLUMN_FIELDS["name"]))
        table_name = clean_text(lookup(row, COLUMN_FIELDS["table_name"])) or ids.table_ids.get(
            lookup(row, COLUMN_FIELDS["table_id"]), ""
        )
        if not name or not table_name:
            stats.record_skip("columns")
            continue

        data_type = lookup(row, COLUMN_FIELDS["data_type"]) or "Unknown"
        if data_type.isdigit():
            data_type = DATA_TYPE_CODES.get(data_type, "Unknown")

        hidden = parse_bool(lookup(row, COLUMN_FIELDS["is_hidden"]))
        if hidden is None:
            visible = parse_bool(lookup(row, COLUMN_FIELDS["is_visible"]))
            hidden = (not visible) if visible is not None else False

        columns.append(
            Column(
                table_name=table_name,
                name=name,
                data_type=data_type,
                is_key=bool(parse_bool(lookup(row, COLUMN_FIELDS["is_key"])))
                or is_key_column(name),
                is_hidden=hidden,
                description=clean_text(lookup(row, COLUMN_FIELDS["description"])),
                format_string=lookup(row, COLUMN_FIELDS["format_string"]),
            )
        )
    return columns


def normalize_measures(
    rows: Iterable[Row],
    ids: IdMaps,
    stats: NormalizationStats,
    max_measures: int | None = None,
) -> list[Measure]:
    """Normalize measure rows.

    Measures are de-duplicated by lower-cased name; the first occurrence wins
    and input order is preserved.
    """
    measures: list[Measure] = []
    seen: set[str] = set()
    for row in rows:
        name = clean_text(lookup(row, MEASURE_FIELDS["name"]))
        expression = clean_text(lookup(row, MEASURE_FIELDS["expression"]))
        if not name or not expression:
            stats.record_skip("measures")
            logger.debug("measure_row_skipped", name=name or None, has_expression=bool(expression))
            continue
        if name.lower() in seen:
            stats.duplicate_measures += 1
            continue
        seen.add(name.lower())

        table_name = clean_text(lookup(row, MEASURE_FIELDS["table_name"])) or ids.table_ids.get(
            lookup(row, MEASURE_FIELDS["table_id"]), ""
        )
        measures.append(
            Measure(
                name=name,
                expression=expression,
                display_folder=clean_text(lookup(row, MEASURE_FIELDS["display_folder"])),
                description=clean_text(lookup(row, MEASURE_FIELDS["description"])),
                table_name=table_name,
                format_string=lookup(row, MEASURE_FIELDS["format_string"])
                or infer_format_string(name, expression),
            )
        )

    if max_measures is not None and max_measures > 0 and len(measures) > max_measures:
        stats.measures_truncated = len(measures) - max_measures
        logger.info("measures_limited", limit=max_measures, total=len(measures))
        measures = measures[:max_measures]
    return measures


def _resolve_endpoint(
    row: Row, ids: IdMaps, side: str
) -> tuple[str, str]:
    table = clean_text(lookup(row, RELATIONSHIP_FIELDS[f"{side}_table"])) or ids.table_ids.get(
        lookup(row, RELATIONSHIP_FIELDS[f"{side}_table_id"]), ""
    )
    column = clean_text(lookup(row, RELATIONSHIP_FIELDS[f"{side}_column"]))
    if not column:
        col_table, col_name = ids.column_ids.get(
            lookup(row, RELATIONSHIP_FIELDS[f"{side}_column_id"]), ("", "")
        )
        column = col_name
        table = table or col_table
    return table, column


def normalize_relationships(
    rows: Iterable[Row], ids: IdMaps, stats: NormalizationStats
) -> list[Relationship]:
    """Normalize relationship rows.

    The compact string form is tried first; discrete from/to fields are the
    fallback when it is absent or unparsable.
    """
    relationships: list[Relationship] = []
    for row in rows:
        active = parse_bool(lookup(row, RELATIONSHIP_FIELDS["active"]))
        text = lookup(row, RELATIONSHIP_FIELDS["relationship"])
        parsed = parse_relationship_string(text) if text else None
        if parsed is not None:
            relationships.append(parsed.model_copy(update={"active": active is not False}))
            continue

        from_table, from_column = _resolve_endpoint(row, ids, "from")
        to_table, to_column = _resolve_endpoint(row, ids, "to")
        if not (from_table and from_column and to_table and to_column):
            if text:
                stats.unparsed_relationships += 1
                logger.debug("relationship_unparsable", relationship=text)
            stats.record_skip("relationships")
            continue

        cardinality = parse_cardinality(lookup(row, RELATIONSHIP_FIELDS["cardinality"]))
        if cardinality is None:
            sides = (
                _side(lookup(row, RELATIONSHIP_FIELDS["from_cardinality"])),
                _side(lookup(row, RELATIONSHIP_FIELDS["to_cardinality"])),
            )
            cardinality = _SIDE_CARDINALITY.get(sides, Cardinality.MANY_TO_ONE)

        relationships.append(
            Relationship(
                from_table=from_table,
                from_column=from_column,
                to_table=to_table,
                to_column=to_column,
                cardinality=cardinality,
                direction=parse_direction(lookup(row, RELATIONSHIP_FIELDS["direction"])),
                active=active is not False,
            )
        )
    return relationships


def normalize_model(
    measures: Iterable[Row] = (),
    tables: Iterable[Row] = (),
    columns: Iterable[Row] = (),
    relationships: Iterable[Row] = (),
    *,
    fact_row_threshold: int = 10_000,
    max_measures: int | None = None,
) -> NormalizedModel:
    """Normalize all four entity row sets into a model.

    Args:
        measures: Raw measure rows
        tables: Raw table rows
        columns: Raw column rows
        relationships: Raw relationship rows
        fact_row_threshold: Row count above which a table is a fact table
        max_measures: Optional limit on the number of measures kept

    Returns:
        NormalizedModel with entities, identifier maps and skip counters
    """
    table_rows = list(tables)
    column_rows = list(columns)

    stats = NormalizationStats()
    ids = build_id_maps(table_rows, column_rows)

    model = SemanticModel(
        tables=normalize_tables(table_rows, stats, fact_row_threshold),
        columns=normalize_columns(column_rows, ids, stats),
        measures=normalize_measures(measures, ids, stats, max_measures),
        relationships=normalize_relationships(relationships, ids, stats),
    )

    for table in model.tables:
        ids.tables.setdefault(table.key, table.name)
    for column in model.columns:
        ids.columns.setdefault(IdMaps.column_key(column.table_name, column.name), column.ref)

    logger.info(
        "normalization_complete",
        measures=len(model.measures),
        tables=len(model.tables),
        columns=len(model.columns),
        relationships=len(model.relationships),
        skipped=stats.total_skipped,
        duplicate_measures=stats.duplicate_measures,
    )
    return NormalizedModel(model=model, ids=ids, stats=stats)


def model_rows(model: SemanticModel) -> dict[str, list[dict[str, Any]]]:
    """Dump a model back into row form, keyed by entity kind."""
    return {
        "measures": [m.model_dump(mode="json") for m in model.measures],
        "tables": [t.model_dump(mode="json") for t in model.tables],
        "columns": [c.model_dump(mode="json") for c in model.columns],
        "relationships": [r.model_dump(mode="json") for r in model.relationships],
    }
