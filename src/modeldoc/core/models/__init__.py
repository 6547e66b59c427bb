"""Core models shared across modules."""

from modeldoc.core.models.base import (
    CamelModel,
    Cardinality,
    Complexity,
    CrossFilterDirection,
    MeasureKind,
    Result,
    SchemaType,
    Severity,
    TableRole,
)

__all__ = [
    "CamelModel",
    "Cardinality",
    "Complexity",
    "CrossFilterDirection",
    "MeasureKind",
    "Result",
    "SchemaType",
    "Severity",
    "TableRole",
]
