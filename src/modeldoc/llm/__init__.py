"""LLM module - text generation behind a narrow request/response contract.

Example usage:

    from modeldoc.llm import LLMClient, create_provider, load_llm_config

    config = load_llm_config()
    provider = create_provider(
        config.active_provider, config.providers[config.active_provider].model_dump()
    )
    client = LLMClient(provider, config)

    result = await client.generate("glossary", prompt, system=system)
    if result.success:
        print(result.value.content)
"""

from modeldoc.llm.client import LLMClient
from modeldoc.llm.config import FeatureConfig, LLMConfig, load_llm_config
from modeldoc.llm.parsing import ParseOutcome, parse_json
from modeldoc.llm.prompts import PromptRenderer, PromptTemplate
from modeldoc.llm.providers import LLMProvider, LLMRequest, LLMResponse, NullProvider, create_provider
from modeldoc.llm.retry import is_transient_error

__all__ = [
    "FeatureConfig",
    "LLMClient",
    "LLMConfig",
    "LLMProvider",
    "LLMRequest",
    "LLMResponse",
    "NullProvider",
    "ParseOutcome",
    "PromptRenderer",
    "PromptTemplate",
    "create_provider",
    "is_transient_error",
    "load_llm_config",
    "parse_json",
]
