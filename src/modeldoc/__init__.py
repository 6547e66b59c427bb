"""modeldoc.

Business documentation for Power BI semantic models, built from their CSV
exports by a staged text-generation pipeline with heuristic fallbacks.

Example:
    from pathlib import Path

    from modeldoc import RunConfig, run

    result = run(RunConfig(source_path=Path("./exports"), skip_llm=True))
    report = result.unwrap().report
    report.overview.domain
"""

__version__ = "0.1.0"

from modeldoc.core.models.base import Result
from modeldoc.pipeline.runner import RunConfig, RunResult, run
from modeldoc.report.models import FinalReport

__all__ = [
    "FinalReport",
    "Result",
    "RunConfig",
    "RunResult",
    "__version__",
    "run",
]
