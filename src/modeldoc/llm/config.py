"""LLM configuration models and loader.

Loads configuration from config/llm.yaml and provides typed access
to all LLM settings: providers, per-stage features and limits.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from modeldoc.core.config import get_settings


class ProviderConfig(BaseModel):
    """Configuration for a single LLM provider."""

    api_key_env: str
    default_model: str
    models: dict[str, str]


class FeatureConfig(BaseModel):
    """Configuration for one pipeline stage's LLM use."""

    enabled: bool = True
    model_tier: str = "balanced"
    prompt_file: str | None = None
    max_output_tokens: int = 4000
    confidence_ceiling: float = Field(default=0.98, ge=0.0, le=1.0)
    description: str = ""


class LLMFeatures(BaseModel):
    """Per-stage feature configuration."""

    domain_classification: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(
            prompt_file="domain_classification", max_output_tokens=1500, confidence_ceiling=0.98
        )
    )
    glossary: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(
            prompt_file="glossary", max_output_tokens=6000, confidence_ceiling=0.97
        )
    )
    architecture: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(
            prompt_file="architecture", max_output_tokens=6000, confidence_ceiling=0.96
        )
    )
    measure_analysis: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(
            prompt_file="measure_analysis", max_output_tokens=2000, confidence_ceiling=0.96
        )
    )
    synthesis: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(
            prompt_file="synthesis", max_output_tokens=8000, confidence_ceiling=0.94
        )
    )
    polish: FeatureConfig = Field(
        default_factory=lambda: FeatureConfig(
            prompt_file="polish", max_output_tokens=4000, confidence_ceiling=0.98
        )
    )

    def get(self, stage_name: str) -> FeatureConfig:
        """Feature configuration for a stage name.

        Raises:
            KeyError: If no stage has this name
        """
        if stage_name not in type(self).model_fields:
            raise KeyError(f"No LLM feature configured for stage: {stage_name}")
        return getattr(self, stage_name)


class LLMLimits(BaseModel):
    """Cost, latency and retry limits."""

    max_output_tokens_per_request: int = 8000
    request_timeout_seconds: float = 120.0
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay_seconds: float = 0.4


class LLMConfig(BaseModel):
    """Complete LLM configuration from llm.yaml."""

    version: str = "1.0.0"
    providers: dict[str, ProviderConfig]
    active_provider: str
    features: LLMFeatures = Field(default_factory=LLMFeatures)
    limits: LLMLimits = Field(default_factory=LLMLimits)


def load_llm_config(config_path: Path | None = None) -> LLMConfig:
    """Load LLM configuration from YAML.

    Args:
        config_path: Path to llm.yaml. If None, uses llm.yaml in the settings config path

    Returns:
        Parsed LLM configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        pydantic.ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = get_settings().config_path / "llm.yaml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"LLM config not found: {config_path}. Create config/llm.yaml from the template."
        )

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return LLMConfig(**data)
