"""Inspect command - show what was parsed from an export directory."""

from __future__ import annotations

from rich.table import Table as RichTable

from modeldoc.cli.common import MaxMeasuresOption, SourceDirArg, console, print_warnings


def inspect(
    source: SourceDirArg,
    max_measures: MaxMeasuresOption = None,
) -> None:
    """Inspect discovery, normalization and integrity without external calls."""
    from modeldoc.analysis import lint_dax, summarize_findings
    from modeldoc.pipeline.runner import ingest

    result = ingest(source, max_measures)
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        return
    ingestion = result.unwrap()
    model = ingestion.normalized.model
    stats = ingestion.normalized.stats

    console.print("\n[bold]Export Files[/bold]\n")
    files = RichTable(show_header=True, header_style="bold")
    files.add_column("Entity")
    files.add_column("File")
    for kind in ("measures", "tables", "columns", "relationships"):
        path = ingestion.discovery.path_for(kind)
        files.add_row(kind, path.name if path else "[yellow]missing[/yellow]")
    console.print(files)

    console.print("\n[bold]Parsed Model[/bold]\n")
    counts = RichTable(show_header=True, header_style="bold")
    counts.add_column("Entity")
    counts.add_column("Parsed", justify="right")
    counts.add_column("Skipped", justify="right")
    for kind, items in (
        ("measures", model.measures),
        ("tables", model.tables),
        ("columns", model.columns),
        ("relationships", model.relationships),
    ):
        counts.add_row(kind, str(len(items)), str(stats.skipped_rows.get(kind, 0)))
    console.print(counts)
    if stats.duplicate_measures:
        console.print(f"Duplicate measures dropped: {stats.duplicate_measures}")
    if stats.unparsed_relationships:
        console.print(f"Unparsable relationships: {stats.unparsed_relationships}")

    if model.tables:
        console.print("\n[bold]Tables[/bold]\n")
        tables = RichTable(show_header=True, header_style="bold")
        tables.add_column("Table")
        tables.add_column("Role")
        tables.add_column("Rows", justify="right")
        tables.add_column("Columns", justify="right")
        column_counts = model.column_counts()
        for t in model.tables:
            tables.add_row(t.name, t.role.value, f"{t.row_count:,}", str(column_counts.get(t.key, 0)))
        console.print(tables)

    findings = [f for m in model.measures for f in lint_dax(m.expression)]
    summary = summarize_findings(findings)
    console.print("\n[bold]Lint[/bold]")
    console.print("  " + ", ".join(f"{k}: {v}" for k, v in summary.items()))

    integrity = ingestion.integrity
    console.print("\n[bold]Integrity[/bold]")
    if integrity.ok and not integrity.warnings:
        console.print("  [green]No issues[/green]")
    for issue in integrity.issues:
        console.print(f"  [red]- {issue}[/red]")
    for warning in integrity.warnings:
        console.print(f"  [yellow]- {warning}[/yellow]")

    print_warnings(ingestion.warnings)
    console.print()
