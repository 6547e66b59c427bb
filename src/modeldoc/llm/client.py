"""LLM client: one call with timeout, retry and admission control.

Every stage goes through ``LLMClient.generate``. The client applies the
stage's feature configuration (model tier, output token cap), bounds each
attempt with a timeout, retries transient failures, and records call metrics.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from modeldoc.core.logging import get_logger, increment_llm_call
from modeldoc.core.models import Result
from modeldoc.llm.config import FeatureConfig, LLMConfig
from modeldoc.llm.providers.base import LLMProvider, LLMRequest, LLMResponse
from modeldoc.llm.retry import retry_result

logger = get_logger(__name__)


class LLMClient:
    """Provider wrapper shared by all stages of a run."""

    def __init__(
        self,
        provider: LLMProvider,
        config: LLMConfig,
        semaphore: asyncio.Semaphore | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.config = config
        self.semaphore = semaphore
        self._sleep = sleep

    def limited(self, semaphore: asyncio.Semaphore) -> LLMClient:
        """Return a client sharing this provider whose calls pass through ``semaphore``."""
        return LLMClient(self.provider, self.config, semaphore=semaphore, sleep=self._sleep)

    def feature(self, stage_name: str) -> FeatureConfig:
        return self.config.features.get(stage_name)

    async def generate(
        self,
        stage_name: str,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> Result[LLMResponse]:
        """Issue one logical completion for a stage.

        Args:
            stage_name: Stage whose feature configuration applies
            prompt: User prompt
            system: Optional system prompt
            temperature: Sampling temperature
            max_tokens: Output cap; defaults to the feature's configured cap

        Returns:
            Result containing the response, or the last error after retries
        """
        feature = self.feature(stage_name)
        if not feature.enabled:
            return Result.fail(f"LLM feature disabled: {stage_name}")

        limits = self.config.limits
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.provider.get_model_for_tier(feature.model_tier),
            temperature=temperature,
            max_tokens=min(
                max_tokens or feature.max_output_tokens, limits.max_output_tokens_per_request
            ),
            timeout_seconds=limits.request_timeout_seconds,
        )

        result = await retry_result(
            lambda: self._attempt(request),
            attempts=limits.retry_attempts,
            base_delay=limits.retry_base_delay_seconds,
            sleep=self._sleep,
            label=stage_name,
        )

        if result.success:
            response = result.unwrap()
            increment_llm_call(response.input_tokens, response.output_tokens)
        else:
            increment_llm_call(failed=True)
            logger.warning("llm_call_failed", stage=stage_name, error=result.error)
        return result

    async def _attempt(self, request: LLMRequest) -> Result[LLMResponse]:
        async with self.semaphore if self.semaphore is not None else contextlib.nullcontext():
            try:
                return await asyncio.wait_for(
                    self.provider.complete(request), timeout=request.timeout_seconds
                )
            except TimeoutError:
                return Result.fail(f"LLM request timeout after {request.timeout_seconds}s")
