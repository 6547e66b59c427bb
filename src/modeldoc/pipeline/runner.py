"""Pipeline runner.

Runs the whole documentation pipeline against a directory of CSV exports:
discovery, reading, normalization, integrity checks, the six stages, and
artifact writing. Used by the command line and importable for programmatic
use.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

from modeldoc.core.config import get_settings
from modeldoc.core.logging import get_logger
from modeldoc.core.models import Result
from modeldoc.llm.client import LLMClient
from modeldoc.llm.config import LLMConfig, load_llm_config
from modeldoc.llm.providers import LLMProvider, NullProvider, create_provider
from modeldoc.model.entities import NormalizedModel
from modeldoc.model.integrity import IntegrityReport, check_integrity
from modeldoc.model.quality import DataQuality, assess_data_quality, ingestion_summary
from modeldoc.pipeline.base import PIPELINE_STAGES, PipelineContext
from modeldoc.pipeline.orchestrator import PipelineConfig, PipelineOutcome, create_pipeline
from modeldoc.report.artifacts import write_artifacts
from modeldoc.report.models import FinalReport
from modeldoc.sources.csv import ENTITY_KINDS, FileDiscovery, discover_files, normalize_model, read_csv_rows

logger = get_logger(__name__)


@dataclass
class RunConfig:
    """Configuration for a pipeline run."""

    source_path: Path
    output_dir: Path | None = None  # defaults to <source_path>/<output_subdir>
    max_measures: int | None = None
    fact_row_threshold: int | None = None  # defaults to the configured setting
    skip_llm: bool = False
    write_outputs: bool = True

    def resolved_output_dir(self) -> Path:
        return self.output_dir or self.source_path / get_settings().output_subdir


@dataclass
class StageRunResult:
    """Result of a single stage execution."""

    stage_name: str
    status: str  # succeeded, fallback_used, merged
    confidence: float = 0.0
    used_fallback: bool = False
    duration_seconds: float = 0.0
    error: str | None = None

    llm_calls: int = 0
    llm_input_tokens: int = 0
    llm_output_tokens: int = 0


@dataclass
class IngestionResult:
    """Everything known about the input before any stage runs."""

    discovery: FileDiscovery
    normalized: NormalizedModel
    integrity: IntegrityReport
    quality: DataQuality
    summary: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class RunResult:
    """Result of a pipeline run.

    Contains all information needed for CLI display:
    - Overall success/failure
    - Per-stage results and confidence
    - Timing and LLM usage
    - Output locations
    """

    success: bool
    run_id: str
    duration_seconds: float
    stages: list[StageRunResult] = field(default_factory=list)
    report: FinalReport | None = None
    overall_confidence: float = 0.0
    recommended_actions: list[str] = field(default_factory=list)
    ingestion: IngestionResult | None = None
    output_dir: Path | None = None
    artifacts: dict[str, Path] = field(default_factory=dict)
    error: str | None = None  # Overall error (required stage failure, setup, etc.)

    @property
    def domain(self) -> str | None:
        return self.report.overview.domain if self.report else None

    @property
    def fallback_stages(self) -> list[str]:
        """Stages whose payload was built without a usable generated response."""
        return [s.stage_name for s in self.stages if s.used_fallback]

    @property
    def total_llm_calls(self) -> int:
        """Total LLM calls across all stages."""
        return sum(s.llm_calls for s in self.stages)

    @property
    def total_llm_tokens(self) -> int:
        """Total LLM tokens (input + output) across all stages."""
        return sum(s.llm_input_tokens + s.llm_output_tokens for s in self.stages)


def ingest(
    source_path: Path, max_measures: int | None = None, fact_row_threshold: int | None = None
) -> Result[IngestionResult]:
    """Discover, read, normalize and check the exports in ``source_path``.

    A missing or unreadable file degrades its entity list to empty and adds a
    warning. Only a missing directory fails.
    """
    discovered = discover_files(source_path)
    if not discovered.success:
        return Result.fail(discovered.error or f"Cannot read {source_path}")
    discovery = discovered.unwrap()

    warnings = [f"No {kind} file found" for kind in discovery.missing]
    rows: dict[str, list[dict[str, str]]] = {}
    for kind in ENTITY_KINDS:
        path = discovery.path_for(kind)
        if path is None:
            rows[kind] = []
            continue
        read = read_csv_rows(path)
        if read.success:
            rows[kind] = read.unwrap()
        else:
            logger.warning("csv_read_failed", kind=kind, path=str(path), error=read.error)
            warnings.append(f"Could not read {path.name}: {read.error}")
            rows[kind] = []

    threshold = fact_row_threshold or get_settings().fact_row_threshold
    normalized = normalize_model(
        rows["measures"],
        rows["tables"],
        rows["columns"],
        rows["relationships"],
        fact_row_threshold=threshold,
        max_measures=max_measures,
    )
    integrity = check_integrity(normalized.model, normalized.ids)
    quality = assess_data_quality(normalized.model, discovery)
    summary = ingestion_summary(normalized.model, integrity, discovery, threshold)
    logger.info("ingestion_complete", issues=len(integrity.issues), warnings=len(integrity.warnings))

    return Result.ok(
        IngestionResult(
            discovery=discovery,
            normalized=normalized,
            integrity=integrity,
            quality=quality,
            summary=summary,
            warnings=warnings,
        )
    )


def create_client(skip_llm: bool = False, llm_config: LLMConfig | None = None) -> LLMClient:
    """LLM client for the configured provider.

    With ``skip_llm``, or when the provider cannot be created (for example a
    missing API key), every call fails fast and each stage uses its fallback.
    """
    llm_config = llm_config or load_llm_config()
    provider: LLMProvider
    if skip_llm:
        provider = NullProvider("LLM calls disabled for this run")
    else:
        name = llm_config.active_provider
        try:
            provider = create_provider(name, llm_config.providers[name].model_dump())
        except (KeyError, ValueError) as e:
            logger.warning("llm_provider_unavailable", provider=name, error=str(e))
            provider = NullProvider(f"Provider '{name}' unavailable: {e}")
    return LLMClient(provider, llm_config)


def _stage_results(outcome: PipelineOutcome) -> list[StageRunResult]:
    stage_metrics = {s["stage_name"]: s for s in outcome.metrics.get("stages", [])}
    results = []
    for name, result in outcome.results.items():
        metrics: dict[str, Any] = stage_metrics.get(name, {})
        results.append(
            StageRunResult(
                stage_name=name,
                status=result.status.value,
                confidence=result.confidence,
                used_fallback=result.used_fallback,
                duration_seconds=result.duration_seconds,
                error=result.error,
                llm_calls=metrics.get("llm_calls", 0),
                llm_input_tokens=metrics.get("llm_input_tokens", 0),
                llm_output_tokens=metrics.get("llm_output_tokens", 0),
            )
        )
    return results


async def run_async(config: RunConfig, client: LLMClient | None = None) -> Result[RunResult]:
    """Run the pipeline with the given configuration.

    Args:
        config: Run configuration
        client: LLM client to use; built from config/llm.yaml if not given

    Returns:
        Result containing RunResult. The Result is Ok unless the input
        directory does not exist. Check RunResult.success for the pipeline
        outcome; warnings carry ingestion and stage degradation messages.
    """
    settings = get_settings()
    run_id = str(uuid4())
    start_time = time.time()
    ingested = ingest(
        config.source_path,
        config.max_measures,
        config.fact_row_threshold or settings.fact_row_threshold,
    )
    if not ingested.success:
        logger.error("pipeline_run_failed", run_id=run_id, error=ingested.error)
        return Result.fail(ingested.error or "Ingestion failed")
    ingestion = ingested.unwrap()
    warnings = list(ingestion.warnings)
    output_dir = config.resolved_output_dir()

    logger.info(
        "pipeline_run_started",
        run_id=run_id,
        source_path=str(config.source_path),
        output_dir=str(output_dir),
        skip_llm=config.skip_llm,
    )

    try:
        client = client or create_client(config.skip_llm)
        pipeline = create_pipeline(
            PipelineConfig(
                max_parallel=settings.max_parallel_calls,
                max_report_bytes=settings.max_report_bytes,
            )
        )
        normalized = ingestion.normalized
        ctx = PipelineContext(
            model=normalized.model, ids=normalized.ids, integrity=ingestion.integrity
        )
        outcome = await pipeline.run(ctx, client, run_id=run_id)

        artifacts: dict[str, Path] = {}
        if config.write_outputs:
            artifacts = write_artifacts(
                output_dir,
                outcome.report,
                outcome.synthesis,
                column_count=len(normalized.model.columns),
                stages={d.name: d.description for d in PIPELINE_STAGES},
            )

        warnings.extend(outcome.warnings)
        duration = time.time() - start_time
        logger.info(
            "pipeline_run_completed",
            run_id=run_id,
            overall_confidence=round(outcome.overall_confidence, 3),
            fallback_stages=outcome.fallback_stages,
            duration_seconds=round(duration, 2),
        )

        return Result.ok(
            RunResult(
                success=True,
                run_id=run_id,
                duration_seconds=duration,
                stages=_stage_results(outcome),
                report=outcome.report,
                overall_confidence=outcome.overall_confidence,
                recommended_actions=outcome.recommended_actions,
                ingestion=ingestion,
                output_dir=output_dir if artifacts else None,
                artifacts=artifacts,
            ),
            warnings=warnings or None,
        )

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            "pipeline_run_failed",
            run_id=run_id,
            error=str(e),
            duration_seconds=round(duration, 2),
        )

        # Return a Result with an error RunResult so CLI can still show partial info
        run_result = RunResult(
            success=False,
            run_id=run_id,
            duration_seconds=duration,
            ingestion=ingestion,
            error=str(e),
        )
        return Result.ok(run_result, warnings=[*warnings, f"Pipeline error: {e}"])


def run(config: RunConfig, client: LLMClient | None = None) -> Result[RunResult]:
    """Synchronous wrapper around ``run_async``."""
    return asyncio.run(run_async(config, client))
