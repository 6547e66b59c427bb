"""Tests for the export normalizer."""

from pathlib import Path

import pytest

from modeldoc.core.models import Cardinality, CrossFilterDirection, TableRole
from modeldoc.sources.csv import (
    clean_text,
    normalize_model,
    parse_bool,
    parse_relationship_string,
    read_csv_rows,
)
from modeldoc.sources.csv.normalizer import model_rows, parse_cardinality, parse_direction


class TestParseHelpers:
    """Tests for the scalar parsing helpers."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes", "Enabled", True])
    def test_parse_bool_true(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "No", "off", False])
    def test_parse_bool_false(self, value):
        assert parse_bool(value) is False

    def test_parse_bool_unknown(self):
        assert parse_bool("maybe") is None
        assert parse_bool(None) is None

    def test_clean_text_strips_wrapping_quotes(self):
        assert clean_text('  "Total Sales"  ') == "Total Sales"

    def test_clean_text_keeps_string_literals(self):
        formula = '"A" & "B"'
        assert clean_text(formula) == formula

    def test_parse_cardinality(self):
        assert parse_cardinality("Many-to-One") == Cardinality.MANY_TO_ONE
        assert parse_cardinality("1:1") == Cardinality.ONE_TO_ONE
        assert parse_cardinality("m2m") == Cardinality.MANY_TO_MANY
        assert parse_cardinality("") is None

    def test_parse_direction(self):
        assert parse_direction("2") == CrossFilterDirection.BOTH
        assert parse_direction("BothDirections") == CrossFilterDirection.BOTH
        assert parse_direction("1") == CrossFilterDirection.SINGLE


class TestParseRelationshipString:
    """Tests for the compact relationship notation."""

    def test_many_to_one(self):
        rel = parse_relationship_string("'Sales'[CustomerID] *[<-]1 'Customer'[ID]")

        assert rel is not None
        assert rel.from_ref == "Sales[CustomerID]"
        assert rel.to_ref == "Customer[ID]"
        assert rel.cardinality == Cardinality.MANY_TO_ONE
        assert rel.direction == CrossFilterDirection.SINGLE

    def test_bidirectional(self):
        rel = parse_relationship_string("'Sales'[Key] *[<->]* 'Budget'[Key]")

        assert rel is not None
        assert rel.cardinality == Cardinality.MANY_TO_MANY
        assert rel.direction == CrossFilterDirection.BOTH

    def test_unparsable(self):
        assert parse_relationship_string("Sales to Customer") is None
        assert parse_relationship_string("") is None


class TestNormalizeMeasures:
    """Tests for measure normalization."""

    def test_synonym_columns(self):
        result = normalize_model(
            measures=[{"MeasureName": "Revenue", "Formula": "SUM(Sales[Amount])", "Folder": "KPIs"}]
        )

        measure = result.model.measures[0]
        assert measure.name == "Revenue"
        assert measure.expression == "SUM(Sales[Amount])"
        assert measure.display_folder == "KPIs"

    def test_rows_without_name_or_expression_skipped(self):
        result = normalize_model(
            measures=[
                {"Name": "No Formula", "Expression": ""},
                {"Name": "", "Expression": "1"},
                {"Name": "Kept", "Expression": "1"},
            ]
        )

        assert [m.name for m in result.model.measures] == ["Kept"]
        assert result.stats.skipped_rows["measures"] == 2

    def test_duplicates_first_occurrence_wins(self):
        result = normalize_model(
            measures=[
                {"Name": "Revenue", "Expression": "SUM(A[x])"},
                {"Name": "REVENUE", "Expression": "SUM(B[y])"},
                {"Name": "Cost", "Expression": "SUM(C[z])"},
            ]
        )

        assert [m.name for m in result.model.measures] == ["Revenue", "Cost"]
        assert result.model.measures[0].expression == "SUM(A[x])"
        assert result.stats.duplicate_measures == 1

    def test_max_measures_truncates(self):
        rows = [{"Name": f"M{i}", "Expression": "1"} for i in range(5)]

        result = normalize_model(measures=rows, max_measures=2)

        assert [m.name for m in result.model.measures] == ["M0", "M1"]
        assert result.stats.measures_truncated == 3

    def test_format_string_inferred_when_missing(self):
        result = normalize_model(
            measures=[
                {"Name": "Margin %", "Expression": "DIVIDE([Profit], [Revenue]) * 100"},
                {"Name": "Units", "Expression": "SUM(Sales[Qty])", "FormatString": "0"},
            ]
        )

        assert result.model.measures[0].format_string == "0.0%"
        assert result.model.measures[1].format_string == "0"

    def test_table_name_resolved_from_table_id(self):
        result = normalize_model(
            measures=[{"Name": "Revenue", "Expression": "1", "TableID": "7"}],
            tables=[{"ID": "7", "Name": "Sales"}],
        )

        assert result.model.measures[0].table_name == "Sales"


class TestNormalizeTables:
    """Tests for table and column normalization."""

    def test_metadata_tables_skipped(self):
        result = normalize_model(tables=[{"Name": "INFO.VIEW.TABLES()"}, {"Name": "Sales"}])

        assert [t.name for t in result.model.tables] == ["Sales"]
        assert result.stats.skipped_rows["tables"] == 1

    def test_role_from_row_count(self):
        result = normalize_model(
            tables=[{"Name": "Sales", "RowCount": "20,000"}, {"Name": "Region", "RowCount": "12"}],
            fact_row_threshold=10_000,
        )

        roles = {t.name: t.role for t in result.model.tables}
        assert roles == {"Sales": TableRole.FACT, "Region": TableRole.DIMENSION}

    def test_hidden_from_visibility(self):
        result = normalize_model(tables=[{"Name": "Bridge", "IsVisible": "false"}])

        assert result.model.tables[0].is_hidden

    def test_column_type_codes_and_keys(self):
        result = normalize_model(
            tables=[{"ID": "1", "Name": "Sales"}],
            columns=[
                {"TableID": "1", "ExplicitName": "OrderKey", "DataType": "2"},
                {"TableID": "1", "ExplicitName": "Amount", "DataType": "4"},
            ],
        )

        key, amount = result.model.columns
        assert key.table_name == "Sales"
        assert key.data_type == "Integer"
        assert key.is_key
        assert amount.data_type == "Decimal"
        assert not amount.is_key

    def test_duplicate_columns_kept(self):
        result = normalize_model(
            columns=[
                {"Table": "Sales", "Name": "Amount"},
                {"Table": "Sales", "Name": "amount"},
            ]
        )

        assert len(result.model.columns) == 2


class TestNormalizeRelationships:
    """Tests for relationship normalization."""

    def test_string_form_preferred(self):
        result = normalize_model(
            relationships=[
                {
                    "Relationship": "'Sales'[CustomerID] *[<-]1 'Customer'[ID]",
                    "FromTable": "Ignored",
                    "IsActive": "false",
                }
            ]
        )

        rel = result.model.relationships[0]
        assert rel.from_table == "Sales"
        assert not rel.active

    def test_discrete_fields(self):
        result = normalize_model(
            relationships=[
                {
                    "FromTable": "Sales",
                    "FromColumn": "DateKey",
                    "ToTable": "Calendar",
                    "ToColumn": "DateKey",
                    "Cardinality": "one-to-one",
                    "CrossFilteringBehavior": "2",
                }
            ]
        )

        rel = result.model.relationships[0]
        assert rel.cardinality == Cardinality.ONE_TO_ONE
        assert rel.direction == CrossFilterDirection.BOTH
        assert rel.active

    def test_identifiers_resolved_through_id_maps(self, csv_dir: Path):
        rows = {
            kind: read_csv_rows(csv_dir / f"Model_{kind.capitalize()}.csv").unwrap()
            for kind in ("measures", "tables", "columns", "relationships")
        }

        result = normalize_model(**rows)

        rel = result.model.relationships[0]
        assert rel.from_ref == "Sales[CustomerID]"
        assert rel.to_ref == "Customer[CustomerID]"
        assert rel.cardinality == Cardinality.MANY_TO_ONE

    def test_unresolvable_rows_skipped(self):
        result = normalize_model(relationships=[{"Relationship": "nonsense"}])

        assert result.model.relationships == []
        assert result.stats.unparsed_relationships == 1


class TestNormalizeModel:
    """Model-level properties of normalization."""

    def test_csv_export(self, csv_dir: Path):
        rows = {
            kind: read_csv_rows(csv_dir / f"Model_{kind.capitalize()}.csv").unwrap()
            for kind in ("measures", "tables", "columns", "relationships")
        }

        result = normalize_model(**rows)

        assert [m.name for m in result.model.measures] == ["Total Sales", "Margin %"]
        assert [t.name for t in result.model.tables] == ["Sales", "Customer"]
        assert len(result.model.columns) == 4
        assert result.ids.has_table("sales")
        assert result.ids.has_column("Customer", "customerid")

    def test_normalizing_normalized_rows_is_identity(self, csv_dir: Path):
        rows = {
            kind: read_csv_rows(csv_dir / f"Model_{kind.capitalize()}.csv").unwrap()
            for kind in ("measures", "tables", "columns", "relationships")
        }
        first = normalize_model(**rows).model

        second = normalize_model(**model_rows(first)).model

        assert second == first

    def test_measure_names_unique_and_within_limit(self):
        rows = [{"Name": name, "Expression": "1"} for name in ["a", "A", "b", "c", "B", "d"]]

        measures = normalize_model(measures=rows, max_measures=3).model.measures

        keys = [m.key for m in measures]
        assert len(keys) == len(set(keys))
        assert len(measures) <= 3
