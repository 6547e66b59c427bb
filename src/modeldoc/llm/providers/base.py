"""Abstract base class for LLM providers.

This module defines the interface that all LLM providers must implement.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from modeldoc.core.models import Result


class LLMRequest(BaseModel):
    """Request to LLM provider."""

    prompt: str
    system: str | None = None
    model: str | None = None  # overrides the provider default
    max_tokens: int = 4000
    temperature: float = 0.0
    response_format: str = "json"  # "json" or "text"
    timeout_seconds: float | None = None


class LLMResponse(BaseModel):
    """Response from LLM provider."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """Abstract base for LLM providers.

    Expected failures (transport, auth, rate limits, empty output) are
    returned as a failed Result; implementations do not raise for them.
    """

    @abstractmethod
    async def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        """Send completion request to provider.

        Args:
            request: The LLM request with prompt and parameters

        Returns:
            Result containing LLMResponse or error message
        """
        pass

    @abstractmethod
    def get_model_for_tier(self, tier: str) -> str:
        """Get model name for a given tier.

        Args:
            tier: Model tier ('fast', 'balanced')

        Returns:
            Model name/identifier for the provider
        """
        pass
