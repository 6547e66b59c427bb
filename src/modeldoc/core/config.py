"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_config_dir() -> Path:
    """Find the config directory by walking up from the package location.

    Looks for a 'config/' directory containing llm.yaml and prompts/.
    Falls back to relative Path("config") if not found.
    """
    # src/modeldoc/core/config.py -> core/ -> modeldoc/ -> src/ -> root/
    package_dir = Path(__file__).resolve().parent.parent.parent.parent
    candidate = package_dir / "config"
    if candidate.is_dir():
        return candidate

    return Path("config")


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: MODELDOC_
    """

    model_config = SettingsConfigDict(
        env_prefix="MODELDOC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars (like ANTHROPIC_API_KEY)
    )

    # Configuration paths
    config_path: Path = Field(
        default_factory=_find_config_dir,
        description="Path to configuration files (llm.yaml, prompts/)",
    )

    # Model heuristics
    fact_row_threshold: int = Field(
        default=10_000,
        description="Tables with more rows than this are treated as fact tables",
    )

    # Pipeline
    max_parallel_calls: int = Field(
        default=3,
        description="Maximum simultaneous LLM calls for the parallel stages",
    )
    max_report_bytes: int = Field(
        default=2_000_000,
        description="Serialized report size above which bulky sections are dropped",
    )
    output_subdir: str = Field(
        default="out",
        description="Artifact directory name, relative to the input directory",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")  # 'json' or 'console'


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
