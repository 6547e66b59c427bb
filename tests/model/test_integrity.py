"""Tests for model integrity checks."""

from modeldoc.core.models import Cardinality
from modeldoc.model.entities import Column, Relationship, SemanticModel, Table
from modeldoc.model.integrity import check_integrity


def _model(relationships: list[Relationship], columns: list[Column] | None = None) -> SemanticModel:
    return SemanticModel(
        tables=[Table(name="Sales"), Table(name="Customer")],
        columns=columns
        if columns is not None
        else [
            Column(table_name="Sales", name="CustomerID"),
            Column(table_name="Customer", name="CustomerID"),
        ],
        relationships=relationships,
    )


class TestCheckIntegrity:
    """Tests for check_integrity."""

    def test_clean_model(self, sample_model: SemanticModel):
        report = check_integrity(sample_model)

        assert report.ok
        assert report.issues == []
        assert report.warnings == []
        assert report.duplicate_columns == []

    def test_unknown_table_reported_once(self):
        model = _model(
            [Relationship(from_table="Sales", from_column="X", to_table="Region", to_column="Y")]
        )

        report = check_integrity(model)

        assert report.issues == ["Unknown table in relationship: Sales[X] → Region[Y]"]
        assert report.summary.unknown_tables == 1
        assert report.summary.unknown_columns == 0
        assert not report.ok

    def test_unknown_column(self):
        model = _model(
            [
                Relationship(
                    from_table="Sales", from_column="CustID", to_table="Customer", to_column="CustomerID"
                )
            ]
        )

        report = check_integrity(model)

        assert report.issues == [
            "Unknown column in relationship: Sales[CustID] → Customer[CustomerID]"
        ]
        assert report.summary.unknown_columns == 1

    def test_lookup_is_case_insensitive(self):
        model = _model(
            [
                Relationship(
                    from_table="sales", from_column="customerid", to_table="CUSTOMER", to_column="CustomerId"
                )
            ]
        )

        assert check_integrity(model).ok

    def test_many_to_many_and_inactive_are_warnings(self):
        model = _model(
            [
                Relationship(
                    from_table="Sales",
                    from_column="CustomerID",
                    to_table="Customer",
                    to_column="CustomerID",
                    cardinality=Cardinality.MANY_TO_MANY,
                    active=False,
                )
            ]
        )

        report = check_integrity(model)

        assert report.ok
        assert report.warnings == [
            "Many-to-Many: Sales[CustomerID] ↔ Customer[CustomerID]",
            "Inactive relationship: Sales[CustomerID] → Customer[CustomerID]",
        ]
        assert report.summary.many_to_many == 1
        assert report.summary.inactive == 1

    def test_duplicate_columns(self):
        model = _model(
            [],
            columns=[
                Column(table_name="Sales", name="Amount"),
                Column(table_name="sales", name="AMOUNT"),
                Column(table_name="Sales", name="Amount"),
            ],
        )

        report = check_integrity(model)

        assert report.duplicate_columns == ["sales[AMOUNT]"]
        assert report.summary.duplicate_columns == 1

    def test_input_not_mutated(self, sample_model: SemanticModel):
        before = sample_model.model_copy(deep=True)

        check_integrity(sample_model)

        assert sample_model == before
