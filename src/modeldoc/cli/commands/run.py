"""Run pipeline command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from modeldoc.cli.common import (
    LogFormatOption,
    MaxMeasuresOption,
    SourceDirArg,
    VerboseOption,
    console,
    print_warnings,
    setup_logging,
)


def run(
    source: SourceDirArg,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output directory for the artifacts (default: <source>/out)",
        ),
    ] = None,
    max_measures: MaxMeasuresOption = None,
    skip_llm: Annotated[
        bool,
        typer.Option(
            "--skip-llm",
            help="Build every stage from heuristics without calling the text-generation service",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output",
        ),
    ] = False,
    verbose: VerboseOption = 0,
    log_format: LogFormatOption = "console",
) -> None:
    """Document a model from its CSV exports.

    Examples:

        modeldoc run /path/to/exports

        modeldoc run /path/to/exports --output ./docs

        modeldoc run /path/to/exports --skip-llm       # Heuristics only

        modeldoc run /path/to/exports -m 25 -v         # First 25 measures, INFO logs

        modeldoc run /path/to/exports --log-format json  # JSON logs for cloud
    """
    setup_logging(verbosity=verbose, log_format=log_format)

    from modeldoc.pipeline.runner import RunConfig
    from modeldoc.pipeline.runner import run as run_pipeline

    config = RunConfig(
        source_path=source,
        output_dir=output,
        max_measures=max_measures,
        skip_llm=skip_llm,
    )

    result = run_pipeline(config)
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        raise typer.Exit(1)
    run_result = result.unwrap()

    if not quiet:
        console.print("\n[bold]Documentation Run[/bold]")
        console.print("=" * 60)
        console.print(f"Source: {config.source_path}")
        console.print(f"Run ID: {run_result.run_id}")
        if run_result.domain:
            console.print(f"Domain: {run_result.domain}")

        if run_result.stages:
            console.print()
            console.print("[bold]Stage Results[/bold]")
            console.print("-" * 60)
            for stage in run_result.stages:
                icon = "[yellow]○[/yellow]" if stage.used_fallback else "[green]✓[/green]"
                duration_str = (
                    f" ({stage.duration_seconds:.1f}s)" if stage.duration_seconds > 0 else ""
                )
                console.print(
                    f"  {icon} {stage.stage_name}: confidence {stage.confidence:.2f}{duration_str}"
                )
                if stage.error:
                    console.print(f"      [yellow]{stage.error}[/yellow]")

        if run_result.report:
            overview = run_result.report.overview
            console.print()
            console.print("[bold]Summary[/bold]")
            console.print("-" * 60)
            console.print(f"  Measures: {overview.measures}")
            console.print(f"  Tables: {overview.tables}")
            console.print(f"  Relationships: {overview.relationships}")
            console.print(f"  Lint findings: {len(run_result.report.lint_findings)}")
            console.print(f"  Overall confidence: {run_result.overall_confidence:.2f}")
            console.print(f"  Duration: {run_result.duration_seconds:.2f}s")

        if run_result.total_llm_calls > 0:
            console.print()
            console.print("[bold]LLM Usage[/bold]")
            console.print("-" * 60)
            console.print(f"  Calls: {run_result.total_llm_calls}")
            console.print(f"  Tokens: {run_result.total_llm_tokens:,}")

        if run_result.artifacts:
            console.print()
            console.print("[bold]Output files:[/bold]")
            for path in run_result.artifacts.values():
                console.print(f"  {path}")

        if run_result.recommended_actions:
            console.print()
            console.print("[bold]Recommended Actions[/bold]")
            for action in run_result.recommended_actions:
                console.print(f"  - {action}")

        if run_result.error:
            console.print()
            console.print(f"[red]Error: {run_result.error}[/red]")

        print_warnings(result.warnings)
        console.print()

    raise typer.Exit(0 if run_result.success else 1)
