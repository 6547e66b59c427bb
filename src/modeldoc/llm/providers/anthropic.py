"""Anthropic Claude provider implementation."""

import os
from typing import Any, cast

import anthropic
from anthropic.types import MessageParam
from pydantic import BaseModel

from modeldoc.core.models import Result
from modeldoc.llm.providers.base import LLMProvider, LLMRequest, LLMResponse

JSON_ONLY_SYSTEM_PROMPT = (
    "Respond with valid JSON only. "
    "Do not use markdown code blocks or any other formatting. "
    "Your entire response should be parseable as JSON."
)


class AnthropicConfig(BaseModel):
    """Configuration for Anthropic provider."""

    api_key_env: str
    default_model: str
    models: dict[str, str]


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider implementation.

    Uses the Anthropic async client. Status-coded API errors keep their HTTP
    status in the error message so callers can decide whether to retry.
    """

    def __init__(self, config: AnthropicConfig):
        """Initialize Anthropic provider.

        Args:
            config: Provider configuration

        Raises:
            ValueError: If API key environment variable not set
        """
        self.config = config

        api_key = os.getenv(config.api_key_env)
        if not api_key:
            raise ValueError(
                f"Missing environment variable: {config.api_key_env}. "
                f"Set your Anthropic API key in .env file."
            )

        # Retries are handled by LLMClient with its own backoff.
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def complete(self, request: LLMRequest) -> Result[LLMResponse]:
        """Send completion request to Claude API.

        Args:
            request: The LLM request

        Returns:
            Result containing LLMResponse or error message
        """
        messages: list[MessageParam] = [
            cast(MessageParam, {"role": "user", "content": request.prompt})
        ]

        system_parts = [request.system] if request.system else []
        if request.response_format == "json":
            system_parts.append(JSON_ONLY_SYSTEM_PROMPT)

        kwargs: dict[str, Any] = {
            "model": request.model or self.config.default_model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)
        if request.timeout_seconds:
            kwargs["timeout"] = request.timeout_seconds

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            return Result.fail(f"Anthropic API timeout: {e}")
        except anthropic.APIConnectionError as e:
            return Result.fail(f"Anthropic API connection error: {e}")
        except anthropic.APIStatusError as e:
            return Result.fail(f"Anthropic API error (status {e.status_code}): {e.message}")
        except anthropic.APIError as e:
            return Result.fail(f"Anthropic API error: {e}")

        content = "".join(block.text for block in response.content if block.type == "text")
        if not content:
            return Result.fail(
                f"No text content in response. Content blocks: {[b.type for b in response.content]}"
            )

        return Result.ok(
            LLMResponse(
                content=content,
                model=response.model,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
            )
        )

    def get_model_for_tier(self, tier: str) -> str:
        """Get Claude model name for tier.

        Args:
            tier: Model tier ('fast' or 'balanced')

        Returns:
            Model name (e.g., 'claude-sonnet-4-20250514')
        """
        return self.config.models.get(tier, self.config.default_model)
