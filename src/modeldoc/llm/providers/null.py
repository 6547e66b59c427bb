"""Provider used when generation is switched off."""

from modeldoc.core.models import Result
from modeldoc.llm.providers.base import LLMProvider, LLMRequest, LLMResponse


class NullProvider(LLMProvider):
    """Fails every request so each stage takes its heuristic path."""

    def __init__(self, reason: str = "LLM calls disabled"):
        self.reason = reason

    async def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        return Result.fail(self.reason)

    def get_model_for_tier(self, tier: str) -> str:
        return "none"
