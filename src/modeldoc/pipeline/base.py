"""Pipeline base types.

Defines the stage result, the context threaded through the stages, and the
static stage definitions used by the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, TypeVar

from modeldoc.model.entities import IdMaps, SemanticModel
from modeldoc.model.integrity import IntegrityReport

P = TypeVar("P")


class StageStatus(str, Enum):
    """Lifecycle of one stage invocation."""

    NOT_STARTED = "not_started"
    REQUESTED = "requested"
    SUCCEEDED = "succeeded"
    FALLBACK_USED = "fallback_used"
    MERGED = "merged"


@dataclass(frozen=True)
class StageResult(Generic[P]):
    """Immutable result of one stage invocation."""

    stage_name: str
    payload: P
    confidence: float
    status: StageStatus = StageStatus.SUCCEEDED
    used_fallback: bool = False
    raw_text: str = ""
    error: str | None = None
    warnings: tuple[str, ...] = ()
    duration_seconds: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(
        cls,
        stage_name: str,
        payload: P,
        confidence: float,
        raw_text: str = "",
        warnings: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StageResult[P]:
        """Create a result from a usable generated response."""
        return cls(
            stage_name=stage_name,
            payload=payload,
            confidence=confidence,
            status=StageStatus.SUCCEEDED,
            raw_text=raw_text,
            warnings=tuple(warnings or ()),
            metadata=metadata or {},
        )

    @classmethod
    def fallback(
        cls,
        stage_name: str,
        payload: P,
        confidence: float,
        error: str | None = None,
        raw_text: str = "",
        warnings: list[str] | None = None,
    ) -> StageResult[P]:
        """Create a result built locally because generation failed or was unusable."""
        return cls(
            stage_name=stage_name,
            payload=payload,
            confidence=confidence,
            status=StageStatus.FALLBACK_USED,
            used_fallback=True,
            raw_text=raw_text,
            error=error,
            warnings=tuple(warnings or ()),
        )

    def timed(self, duration_seconds: float) -> StageResult[P]:
        return replace(self, duration_seconds=duration_seconds)

    def merged(self) -> StageResult[P]:
        """Mark the result as folded into the report."""
        return replace(self, status=StageStatus.MERGED)


@dataclass(frozen=True)
class PipelineContext:
    """Read-mostly state threaded through the stages.

    Stages never mutate the context. The orchestrator derives an extended copy
    after each sequential step; the parallel stages all read the same copy.
    """

    model: SemanticModel
    ids: IdMaps = field(default_factory=IdMaps)
    integrity: IntegrityReport = field(default_factory=IntegrityReport)
    domain: str = "Analytics Model"
    stakeholders: tuple[str, ...] = ()
    business_context: str = ""
    outputs: dict[str, StageResult[Any]] = field(default_factory=dict)

    def with_classification(
        self, domain: str, stakeholders: list[str], business_context: str
    ) -> PipelineContext:
        return replace(
            self,
            domain=domain,
            stakeholders=tuple(stakeholders),
            business_context=business_context,
        )

    def with_output(self, result: StageResult[Any]) -> PipelineContext:
        """Copy of the context with one more stage output recorded."""
        return replace(self, outputs={**self.outputs, result.stage_name: result})

    def output(self, stage_name: str) -> StageResult[Any] | None:
        return self.outputs.get(stage_name)


@dataclass
class StageDefinition:
    """Static definition of a stage for the run order."""

    name: str
    description: str
    dependencies: list[str]
    required: bool = True
    parallel_group: str | None = None  # Stages in same group run concurrently
    confidence_weight: float = 1.0


PIPELINE_STAGES: list[StageDefinition] = [
    StageDefinition(
        name="domain_classification",
        description="Business domain, stakeholders and processes",
        dependencies=[],
    ),
    StageDefinition(
        name="glossary",
        description="Business glossary and metric quick reference",
        dependencies=["domain_classification"],
        required=False,
        parallel_group="analysis",
    ),
    StageDefinition(
        name="architecture",
        description="Table roles, schema type and governance",
        dependencies=["domain_classification"],
        required=False,
        parallel_group="analysis",
    ),
    StageDefinition(
        name="measure_analysis",
        description="Per-measure DAX analysis",
        dependencies=["domain_classification"],
        required=False,
        parallel_group="analysis",
        confidence_weight=2.0,
    ),
    StageDefinition(
        name="synthesis",
        description="Combine analyses into one report",
        dependencies=["domain_classification", "glossary", "architecture", "measure_analysis"],
        confidence_weight=2.0,
    ),
    StageDefinition(
        name="polish",
        description="Stakeholder-ready wording with fixed statistics",
        dependencies=["synthesis"],
        confidence_weight=2.0,
    ),
]


def get_stage_definition(name: str) -> StageDefinition | None:
    """Get a stage definition by name."""
    for stage in PIPELINE_STAGES:
        if stage.name == name:
            return stage
    return None


def stage_names() -> list[str]:
    return [stage.name for stage in PIPELINE_STAGES]


class PipelineError(Exception):
    """A required stage raised; the run cannot produce a report."""

    def __init__(self, stage_name: str, message: str):
        self.stage_name = stage_name
        super().__init__(f"Stage '{stage_name}' failed: {message}")
