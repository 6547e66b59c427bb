"""Write the run artifacts to an output directory."""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from modeldoc.core.logging import get_logger
from modeldoc.report.models import FinalReport
from modeldoc.report.render import render_csv, render_markdown

logger = get_logger(__name__)

SCHEMA_VERSION = "1.0.0"

META_FILE = "meta.json"
REPORT_FILE = "final_report.json"
SYNTHESIS_FILE = "synthesis.json"
MARKDOWN_FILE = "model_documentation.md"
CSV_FILE = "model_kpis.csv"

ARTIFACTS: dict[str, str] = {
    REPORT_FILE: "Canonical report JSON",
    SYNTHESIS_FILE: "Report as assembled before polishing",
    MARKDOWN_FILE: "Executive overview document",
    CSV_FILE: "Flat KPI table for spreadsheets",
}


def build_meta(
    report: FinalReport,
    column_count: int,
    stages: Mapping[str, str],
    generated_at: datetime,
) -> dict[str, Any]:
    """Versioning record written next to the report."""
    return {
        "schemaVersion": SCHEMA_VERSION,
        "generatedAt": generated_at.isoformat(),
        "counts": {
            "measures": report.overview.measures,
            "tables": report.overview.tables,
            "columns": column_count,
            "relationships": report.overview.relationships,
        },
        "domain": report.overview.domain,
        "pipeline": dict(stages),
        "artifacts": dict(ARTIFACTS),
    }


def _write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def write_artifacts(
    output_dir: Path,
    report: FinalReport,
    synthesis: FinalReport,
    *,
    column_count: int = 0,
    stages: Mapping[str, str] | None = None,
    generated_at: datetime | None = None,
) -> dict[str, Path]:
    """Write every artifact and return their paths keyed by file name.

    Args:
        output_dir: Target directory, created if missing
        report: Final report after polish and insights
        synthesis: Report as the synthesis stage produced it
        column_count: Number of parsed columns, for the metadata counts
        stages: Stage name to description, recorded in the metadata
        generated_at: Timestamp for the metadata and markdown footer

    Raises:
        OSError: If the directory or a file cannot be written
    """
    generated_at = generated_at or datetime.now(UTC)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {name: output_dir / name for name in (META_FILE, *ARTIFACTS)}
    _write_json(paths[META_FILE], build_meta(report, column_count, stages or {}, generated_at))
    _write_json(paths[REPORT_FILE], report.to_json_dict())
    _write_json(paths[SYNTHESIS_FILE], synthesis.to_json_dict())
    paths[MARKDOWN_FILE].write_text(render_markdown(report, generated_at), encoding="utf-8")
    paths[CSV_FILE].write_text(render_csv(report), encoding="utf-8")

    logger.info("artifacts_written", output_dir=str(output_dir), files=len(paths))
    return paths
