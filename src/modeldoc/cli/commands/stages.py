"""Stages command - list the pipeline stages."""

from __future__ import annotations

from rich.table import Table as RichTable

from modeldoc.cli.common import console


def stages() -> None:
    """List pipeline stages, their dependencies and confidence weights."""
    from modeldoc.pipeline.base import PIPELINE_STAGES

    console.print("\n[bold]Pipeline Stages[/bold]\n")

    table = RichTable(show_header=True, header_style="bold")
    table.add_column("Stage")
    table.add_column("Description")
    table.add_column("Dependencies")
    table.add_column("Required")
    table.add_column("Weight", justify="right")

    for stage_def in PIPELINE_STAGES:
        deps = ", ".join(stage_def.dependencies) if stage_def.dependencies else "-"
        required = "Yes" if stage_def.required else "No"
        table.add_row(
            stage_def.name, stage_def.description, deps, required, f"{stage_def.confidence_weight:g}"
        )

    console.print(table)
    console.print()
