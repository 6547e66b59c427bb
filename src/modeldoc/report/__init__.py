"""Final report contract and its rendered views."""

from modeldoc.report.artifacts import build_meta, write_artifacts
from modeldoc.report.models import FinalReport, Overview, ReportMeasure, ReportRelationship, ReportTable
from modeldoc.report.render import kpi_rows, render_csv, render_markdown

__all__ = [
    "FinalReport",
    "Overview",
    "ReportMeasure",
    "ReportRelationship",
    "ReportTable",
    "build_meta",
    "kpi_rows",
    "render_csv",
    "render_markdown",
    "write_artifacts",
]
