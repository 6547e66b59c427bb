"""Base stage implementation.

Every stage follows the same contract: render a schema-first prompt from the
parts of the context it needs, issue one generation call, parse the response
tolerantly, and coerce it into the stage payload. When the call fails the
stage builds its payload locally instead, so a stage never fails the run on
its own.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from modeldoc.core.logging import get_logger, log_context
from modeldoc.core.merge import as_float, pick
from modeldoc.llm.client import LLMClient
from modeldoc.llm.parsing import parse_json
from modeldoc.llm.prompts import PromptRenderer
from modeldoc.pipeline.base import PipelineContext, StageResult

P = TypeVar("P")

logger = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.3
DEFAULT_CLAIMED_CONFIDENCE = 0.9


def clamp_confidence(value: Any, ceiling: float, default: float = DEFAULT_CLAIMED_CONFIDENCE) -> float:
    """Clamp a claimed confidence into ``[0, ceiling]``; unusable values become ``default``."""
    return max(0.0, min(ceiling, as_float(value, default)))


class BaseStage(ABC, Generic[P]):
    """Base class for pipeline stages.

    Subclasses must implement:
    - name property
    - description property
    - build_inputs: prompt variables for this stage
    - _coerce: raw parsed response to payload
    - _fallback: payload built without generation
    """

    def __init__(self, renderer: PromptRenderer | None = None):
        self._renderer = renderer

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this stage."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""
        ...

    @property
    def renderer(self) -> PromptRenderer:
        if self._renderer is None:
            self._renderer = PromptRenderer()
        return self._renderer

    def should_skip(self, ctx: PipelineContext) -> str | None:
        """Check if this stage should be skipped.

        Default implementation: never skip.

        Returns:
            None if the stage should run, or a reason string if it should be skipped.
        """
        return None

    @abstractmethod
    def build_inputs(self, ctx: PipelineContext) -> dict[str, Any]:
        """Prompt variables for this stage, scoped to what it needs."""
        ...

    @abstractmethod
    def _coerce(self, data: Mapping[str, Any], ctx: PipelineContext) -> P:
        """Turn a parsed response of any shape into a complete payload."""
        ...

    @abstractmethod
    def _fallback(self, ctx: PipelineContext, error: str) -> P:
        """Build the payload from heuristics and the model alone."""
        ...

    def _default(self, ctx: PipelineContext) -> P:
        """Payload used when a response could not be parsed at all."""
        return self._coerce({}, ctx)

    def default_result(self, ctx: PipelineContext, error: str) -> StageResult[P]:
        """Zero-confidence result used when the stage itself raised."""
        return StageResult.fallback(self.name, self._default(ctx), 0.0, error=error)

    def fallback_result(self, ctx: PipelineContext, error: str) -> StageResult[P]:
        return StageResult.fallback(
            self.name, self._fallback(ctx, error), FALLBACK_CONFIDENCE, error=error
        )

    def skipped_result(self, ctx: PipelineContext, reason: str) -> StageResult[P]:
        return StageResult.succeeded(
            self.name, self._default(ctx), 1.0, metadata={"skipped_reason": reason}
        )

    async def execute(self, ctx: PipelineContext, client: LLMClient) -> StageResult[P]:
        """Execute the stage.

        Args:
            ctx: Pipeline context; never mutated
            client: LLM client for this stage

        Returns:
            StageResult, either generated or built by the fallback path
        """
        start_time = time.time()
        with log_context(stage=self.name):
            logger.info("stage_started", description=self.description)

            skip_reason = self.should_skip(ctx)
            if skip_reason:
                logger.info("stage_skipped", reason=skip_reason)
                result = self.skipped_result(ctx, skip_reason)
            else:
                result = await self._run(ctx, client)

            if result.used_fallback:
                logger.warning("stage_fallback_used", error=result.error)
            logger.info(
                "stage_completed",
                status=result.status.value,
                confidence=round(result.confidence, 3),
            )
        return result.timed(time.time() - start_time)

    async def _run(self, ctx: PipelineContext, client: LLMClient) -> StageResult[P]:
        """Render, call and interpret. Overridden by stages that issue several calls."""
        try:
            system, prompt, temperature = self.render(ctx, client)
        except (FileNotFoundError, KeyError, ValueError) as e:
            return self.fallback_result(ctx, f"Failed to render prompt: {e}")

        response = await client.generate(self.name, prompt, system=system, temperature=temperature)
        if not response.success:
            return self.fallback_result(ctx, response.error or "Unknown error")

        ceiling = client.feature(self.name).confidence_ceiling
        return self.interpret(response.unwrap().content, ctx, ceiling)

    def render(
        self, ctx: PipelineContext, client: LLMClient, inputs: dict[str, Any] | None = None
    ) -> tuple[str | None, str, float]:
        template = client.feature(self.name).prompt_file or self.name
        return self.renderer.render_split(template, inputs if inputs is not None else self.build_inputs(ctx))

    def interpret(self, text: str, ctx: PipelineContext, ceiling: float) -> StageResult[P]:
        """Parse generated text into a result.

        Text with no recoverable JSON object yields the default payload at
        zero confidence. Otherwise the claimed confidence is clamped to the
        stage ceiling.
        """
        outcome = parse_json(text, default={}, expected=dict)
        if outcome.used_default:
            return StageResult.fallback(
                self.name,
                self._default(ctx),
                0.0,
                error="Response contained no usable JSON object",
                raw_text=text,
            )

        payload = self._coerce(outcome.value, ctx)
        return StageResult.succeeded(
            self.name,
            payload,
            clamp_confidence(pick(outcome.value, "confidence"), ceiling),
            raw_text=text,
            metadata={"parse_strategy": outcome.strategy},
        )
