"""Structured logging and run metrics.

Usage:
    from modeldoc.core.logging import get_logger, configure_logging

    # Configure at startup
    configure_logging(log_level="INFO", log_format="console")

    # Get logger in any module
    logger = get_logger(__name__)

    # Log with structured context
    logger.info("stage_started", stage="glossary", measures=42)

    # Scope context to a block
    with log_context(run_id="run-123", stage="synthesis"):
        logger.info("llm_call", attempt=1)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

import structlog
from structlog.typing import FilteringBoundLogger

# Context variables for correlation
_run_context: ContextVar[dict[str, Any] | None] = ContextVar("run_context", default=None)


@dataclass
class StageMetrics:
    """Metrics collected during one stage execution."""

    stage_name: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None

    llm_calls: int = 0
    llm_failures: int = 0
    llm_input_tokens: int = 0
    llm_output_tokens: int = 0
    measures_processed: int = 0

    @property
    def duration_seconds(self) -> float:
        """Get duration in seconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return (datetime.now(UTC) - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "stage_name": self.stage_name,
            "duration_seconds": self.duration_seconds,
            "llm_calls": self.llm_calls,
            "llm_failures": self.llm_failures,
            "llm_input_tokens": self.llm_input_tokens,
            "llm_output_tokens": self.llm_output_tokens,
            "measures_processed": self.measures_processed,
        }


@dataclass
class PipelineMetrics:
    """Aggregate metrics for an entire pipeline run."""

    run_id: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    stages: list[StageMetrics] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Get total duration in seconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return (datetime.now(UTC) - self.start_time).total_seconds()

    @property
    def total_llm_calls(self) -> int:
        return sum(s.llm_calls for s in self.stages)

    def add_stage(self, metrics: StageMetrics) -> None:
        """Add stage metrics."""
        self.stages.append(metrics)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "run_id": self.run_id,
            "duration_seconds": self.duration_seconds,
            "stage_count": len(self.stages),
            "total_llm_calls": self.total_llm_calls,
            "total_llm_tokens": sum(
                s.llm_input_tokens + s.llm_output_tokens for s in self.stages
            ),
            "stages": [s.to_dict() for s in self.stages],
        }


# Metrics storage (per-run)
_current_metrics: ContextVar[PipelineMetrics | None] = ContextVar("current_metrics", default=None)
_current_stage_metrics: ContextVar[StageMetrics | None] = ContextVar(
    "current_stage_metrics", default=None
)


def start_pipeline_metrics(run_id: str) -> PipelineMetrics:
    """Start collecting metrics for a pipeline run."""
    metrics = PipelineMetrics(run_id=run_id)
    _current_metrics.set(metrics)
    return metrics


def get_pipeline_metrics() -> PipelineMetrics | None:
    """Get current pipeline metrics."""
    return _current_metrics.get()


def start_stage_metrics(stage_name: str) -> StageMetrics:
    """Start collecting metrics for a stage."""
    metrics = StageMetrics(stage_name=stage_name)
    _current_stage_metrics.set(metrics)
    return metrics


def get_stage_metrics() -> StageMetrics | None:
    """Get current stage metrics."""
    return _current_stage_metrics.get()


def end_stage_metrics() -> StageMetrics | None:
    """End current stage metrics and add to pipeline metrics."""
    stage_metrics = _current_stage_metrics.get()
    if stage_metrics:
        stage_metrics.end_time = datetime.now(UTC)
        pipeline_metrics = _current_metrics.get()
        if pipeline_metrics:
            pipeline_metrics.add_stage(stage_metrics)
        _current_stage_metrics.set(None)
    return stage_metrics


def end_pipeline_metrics() -> PipelineMetrics | None:
    """End pipeline metrics collection."""
    metrics = _current_metrics.get()
    if metrics:
        metrics.end_time = datetime.now(UTC)
        _current_metrics.set(None)
    return metrics


def _add_run_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add run context to log events."""
    context = _run_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def _add_metrics_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add current metrics context."""
    stage_metrics = _current_stage_metrics.get()
    if stage_metrics:
        event_dict["_stage"] = stage_metrics.stage_name
    pipeline_metrics = _current_metrics.get()
    if pipeline_metrics:
        event_dict["_run_id"] = pipeline_metrics.run_id
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    show_timestamps: bool = True,
    color: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ("console" for development, "json" for machines)
        show_timestamps: Whether to show timestamps
        color: Whether to use colors in console mode
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_run_context,
        _add_metrics_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if show_timestamps:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=color,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Also configure stdlib logging for libraries (httpx, anthropic)
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))


class LogContext:
    """Context manager for adding context to logs within a scope."""

    def __init__(self, **context: Any):
        self.context = context
        self.token: Any = None

    def __enter__(self) -> LogContext:
        current = _run_context.get() or {}
        self.token = _run_context.set({**current, **self.context})
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token:
            _run_context.reset(self.token)


def log_context(**context: Any) -> LogContext:
    """Create a context manager for scoped logging context.

    Usage:
        with log_context(run_id="abc", stage="glossary"):
            logger.info("processing")  # Will include run_id and stage
    """
    return LogContext(**context)


def increment_llm_call(input_tokens: int = 0, output_tokens: int = 0, failed: bool = False) -> None:
    """Increment LLM call counters in current stage metrics."""
    metrics = _current_stage_metrics.get()
    if metrics:
        metrics.llm_calls += 1
        metrics.llm_input_tokens += input_tokens
        metrics.llm_output_tokens += output_tokens
        if failed:
            metrics.llm_failures += 1


def record_measures_processed(count: int) -> None:
    """Record measures processed in current stage metrics."""
    metrics = _current_stage_metrics.get()
    if metrics:
        metrics.measures_processed += count


# Initialize with default configuration
configure_logging()
