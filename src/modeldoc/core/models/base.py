"""Base models and types used across all modules.

This module contains the fundamental types that don't belong to any specific
domain module (sources, analysis, pipeline, etc.).
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """Result type for operations that can fail.

    Use this instead of exceptions for expected failures.
    Exceptions are reserved for unexpected/programming errors.
    """

    success: bool
    value: T | None = None
    error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, value: T, warnings: list[str] | None = None) -> Result[T]:
        """Create a successful result."""
        return cls(success=True, value=value, warnings=warnings or [])

    @classmethod
    def fail(cls, error: str) -> Result[T]:
        """Create a failed result."""
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Get the value or raise if failed."""
        if not self.success:
            raise ValueError(f"Result failed: {self.error}")
        assert self.value is not None
        return self.value

    def map(self, fn: Callable[[T], Any]) -> Result[Any]:
        """Transform the value if successful."""
        if self.success and self.value is not None:
            return Result.ok(fn(self.value), self.warnings)
        return self


class CamelModel(BaseModel):
    """Model serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Enums ===


class Severity(str, Enum):
    """Severity of a lint finding."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class MeasureKind(str, Enum):
    """Heuristic classification of a measure formula."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    RATIO = "ratio"
    PERCENT = "percent"
    TIME_INTEL = "time-intel"
    WINDOWED = "windowed"
    OTHER = "other"


class Cardinality(str, Enum):
    """Relationship cardinality between two tables."""

    MANY_TO_ONE = "Many-to-One"
    ONE_TO_MANY = "One-to-Many"
    ONE_TO_ONE = "One-to-One"
    MANY_TO_MANY = "Many-to-Many"


class CrossFilterDirection(str, Enum):
    """Filter propagation direction of a relationship."""

    SINGLE = "Single"
    BOTH = "Both"


class TableRole(str, Enum):
    """Inferred role of a table in the model."""

    FACT = "fact"
    DIMENSION = "dimension"


class Complexity(str, Enum):
    """Formula complexity bucket."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class SchemaType(str, Enum):
    """Overall schema shape of the model."""

    STAR = "Star"
    SNOWFLAKE = "Snowflake"
    GALAXY = "Galaxy"
    UNKNOWN = "Unknown"
