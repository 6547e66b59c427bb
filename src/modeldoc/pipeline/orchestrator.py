"""Pipeline orchestrator.

Runs the stages in their fixed order:

    domain_classification
        -> glossary | architecture | measure_analysis   (concurrent)
        -> synthesis
        -> polish
        -> contextual insights

The three analysis stages share one admission limiter, so at most
``max_parallel`` generation calls are in flight. Their join settles all
three: an exception in one becomes that stage's zero-confidence default and
never cancels the others. An exception in a required stage aborts the run.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from modeldoc.core.logging import (
    end_pipeline_metrics,
    end_stage_metrics,
    get_logger,
    log_context,
    start_pipeline_metrics,
    start_stage_metrics,
)
from modeldoc.llm.client import LLMClient
from modeldoc.llm.prompts import PromptRenderer
from modeldoc.pipeline.base import (
    PIPELINE_STAGES,
    PipelineContext,
    PipelineError,
    StageResult,
    get_stage_definition,
)
from modeldoc.pipeline.insights import attach_insights
from modeldoc.pipeline.models import PolishPayload
from modeldoc.pipeline.stages import (
    ArchitectureStage,
    BaseStage,
    ClassificationStage,
    GlossaryStage,
    MeasureAnalysisStage,
    PolishStage,
    SynthesisStage,
)
from modeldoc.report.models import FinalReport

logger = get_logger(__name__)

PARALLEL_GROUP = "analysis"

RECOMMENDED_ACTIONS = [
    "Deploy documentation to stakeholder portals",
    "Schedule training sessions for business users",
    "Implement automated report refresh workflows",
    "Establish data quality monitoring",
]


def overall_confidence(results: dict[str, StageResult[Any]]) -> float:
    """Weighted mean of stage confidences using each stage's configured weight."""
    total = 0.0
    weights = 0.0
    for name, result in results.items():
        definition = get_stage_definition(name)
        weight = definition.confidence_weight if definition else 1.0
        total += result.confidence * weight
        weights += weight
    return total / weights if weights else 0.0


def report_size(report: FinalReport) -> int:
    return len(json.dumps(report.to_json_dict()).encode("utf-8"))


def apply_size_guard(report: FinalReport, max_bytes: int) -> FinalReport:
    """Drop per-measure tests when the serialized report is larger than ``max_bytes``."""
    size = report_size(report)
    if size <= max_bytes:
        return report
    logger.warning("report_size_exceeded", size_bytes=size, max_bytes=max_bytes)
    trimmed = report.model_copy(deep=True)
    for measure in trimmed.measures:
        measure.tests = []
    return trimmed


@dataclass
class PipelineConfig:
    """Configuration for pipeline execution."""

    max_parallel: int = 3
    max_report_bytes: int = 2_000_000


@dataclass
class PipelineOutcome:
    """Everything a run produced."""

    run_id: str
    report: FinalReport
    synthesis: FinalReport
    results: dict[str, StageResult[Any]]
    context: PipelineContext
    overall_confidence: float
    duration_seconds: float
    recommended_actions: list[str] = field(default_factory=lambda: list(RECOMMENDED_ACTIONS))
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def polish(self) -> PolishPayload:
        return self.results["polish"].payload

    @property
    def fallback_stages(self) -> list[str]:
        return [name for name, r in self.results.items() if r.used_fallback]

    @property
    def warnings(self) -> list[str]:
        out = []
        for name, result in self.results.items():
            out.extend(f"{name}: {w}" for w in result.warnings)
            if result.used_fallback and result.error:
                out.append(f"{name} used fallback: {result.error}")
        return out


@dataclass
class Pipeline:
    """Pipeline orchestrator.

    Stages are registered by name; ``run`` requires every stage in
    ``PIPELINE_STAGES`` to be registered.
    """

    stages: dict[str, BaseStage[Any]] = field(default_factory=dict)
    config: PipelineConfig = field(default_factory=PipelineConfig)

    def register(self, stage: BaseStage[Any]) -> None:
        """Register a stage implementation."""
        self.stages[stage.name] = stage

    def _stage(self, name: str) -> BaseStage[Any]:
        if name not in self.stages:
            raise PipelineError(name, "stage not registered")
        return self.stages[name]

    async def run(
        self, ctx: PipelineContext, client: LLMClient, run_id: str | None = None
    ) -> PipelineOutcome:
        """Run every stage and assemble the final report.

        Args:
            ctx: Context holding the normalized model and integrity report
            client: LLM client; the analysis stages get a limited copy
            run_id: Optional run ID (generated if not provided)

        Returns:
            PipelineOutcome with the final report and every stage result

        Raises:
            PipelineError: If a required stage raised
        """
        run_id = run_id or str(uuid4())
        start_time = time.time()
        start_pipeline_metrics(run_id=run_id)

        try:
            with log_context(run_id=run_id):
                logger.info(
                    "pipeline_started",
                    measures=len(ctx.model.measures),
                    tables=len(ctx.model.tables),
                    relationships=len(ctx.model.relationships),
                )

                classification = await self._run_required("domain_classification", ctx, client)
                ctx = ClassificationStage.apply(
                    ctx.with_output(classification), classification.payload
                )
                logger.info("domain_classified", domain=ctx.domain, stakeholders=list(ctx.stakeholders))

                ctx = await self._run_parallel(ctx, client)

                synthesis = await self._run_required("synthesis", ctx, client)
                ctx = ctx.with_output(synthesis)

                polish = await self._run_required("polish", ctx, client)
                ctx = ctx.with_output(polish)

                report = attach_insights(polish.payload.report, ctx)
                report = apply_size_guard(report, self.config.max_report_bytes)
        finally:
            metrics = end_pipeline_metrics()

        results = {name: result.merged() for name, result in ctx.outputs.items()}
        confidence = overall_confidence(results)
        duration = time.time() - start_time

        logger.info(
            "pipeline_completed",
            run_id=run_id,
            overall_confidence=round(confidence, 3),
            fallback_stages=[n for n, r in results.items() if r.used_fallback],
            duration_seconds=round(duration, 2),
        )

        return PipelineOutcome(
            run_id=run_id,
            report=report,
            synthesis=synthesis.payload,
            results=results,
            context=ctx,
            overall_confidence=confidence,
            duration_seconds=duration,
            metrics=metrics.to_dict() if metrics else {},
        )

    async def _run_parallel(self, ctx: PipelineContext, client: LLMClient) -> PipelineContext:
        """Run the analysis stages concurrently and settle all of them."""
        stages = [
            self._stage(d.name) for d in PIPELINE_STAGES if d.parallel_group == PARALLEL_GROUP
        ]
        limited = client.limited(asyncio.Semaphore(self.config.max_parallel))

        settled = await asyncio.gather(
            *(self._execute(stage, ctx, limited) for stage in stages), return_exceptions=True
        )

        extended = ctx
        for stage, outcome in zip(stages, settled, strict=True):
            if isinstance(outcome, BaseException):
                logger.error("stage_failed", stage=stage.name, error=str(outcome))
                outcome = stage.default_result(ctx, str(outcome))
            extended = extended.with_output(outcome)
        return extended

    async def _run_required(
        self, name: str, ctx: PipelineContext, client: LLMClient
    ) -> StageResult[Any]:
        stage = self._stage(name)
        try:
            return await self._execute(stage, ctx, client)
        except Exception as e:
            logger.error("stage_failed", stage=name, error=str(e))
            raise PipelineError(name, str(e)) from e

    async def _execute(
        self, stage: BaseStage[Any], ctx: PipelineContext, client: LLMClient
    ) -> StageResult[Any]:
        start_stage_metrics(stage.name)
        try:
            return await stage.execute(ctx, client)
        finally:
            end_stage_metrics()


def create_pipeline(
    config: PipelineConfig | None = None, renderer: PromptRenderer | None = None
) -> Pipeline:
    """Pipeline with every stage registered, sharing one prompt renderer."""
    renderer = renderer or PromptRenderer()
    pipeline = Pipeline(config=config or PipelineConfig())
    for stage_cls in (
        ClassificationStage,
        GlossaryStage,
        ArchitectureStage,
        MeasureAnalysisStage,
        SynthesisStage,
        PolishStage,
    ):
        pipeline.register(stage_cls(renderer))
    return pipeline
