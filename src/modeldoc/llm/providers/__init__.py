"""LLM provider implementations and factory."""

from typing import Any

from modeldoc.llm.providers.base import LLMProvider, LLMRequest, LLMResponse
from modeldoc.llm.providers.null import NullProvider

__all__ = ["LLMProvider", "LLMRequest", "LLMResponse", "NullProvider", "create_provider"]


def create_provider(provider_name: str, provider_config: dict[str, Any]) -> LLMProvider:
    """Create LLM provider based on configuration.

    Args:
        provider_name: Provider name ('anthropic' or 'none')
        provider_config: Provider-specific configuration dict

    Returns:
        Initialized LLM provider

    Raises:
        ValueError: If provider name is unknown
    """
    if provider_name == "anthropic":
        from modeldoc.llm.providers.anthropic import AnthropicConfig, AnthropicProvider

        return AnthropicProvider(AnthropicConfig(**provider_config))

    elif provider_name == "none":
        return NullProvider(provider_config.get("reason", "LLM calls disabled"))

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}. Supported providers: anthropic, none")
