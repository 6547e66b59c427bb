"""Lint command - check one DAX expression."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.table import Table as RichTable

from modeldoc.cli.common import console

SEVERITY_STYLES = {"error": "red", "warn": "yellow", "info": "cyan"}


def lint(
    expression: Annotated[str, typer.Argument(help="DAX expression to check")],
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Measure name, used for kind and format inference"),
    ] = "Measure",
) -> None:
    """Lint a DAX expression and describe it without any external calls.

    Exits with status 1 when an error-severity finding is present.

    Examples:

        modeldoc lint "[Profit] / [Revenue]"

        modeldoc lint "DIVIDE([Profit], [Revenue]) * 100" --name "Margin %"
    """
    from modeldoc.analysis import describe_measure, infer_format_string, lint_dax, summarize_findings

    findings = lint_dax(expression)
    description = describe_measure(name, expression)

    console.print(f"\n[bold]{description.name}[/bold]")
    console.print(f"  Kind: {description.kind.value}")
    console.print(f"  Format: {infer_format_string(name, expression)}")
    console.print(f"  Purpose: {description.purpose}")
    if description.dependencies:
        console.print(f"  Dependencies: {', '.join(description.dependencies)}")

    if not findings:
        console.print("\n[green]No lint findings[/green]\n")
        raise typer.Exit(0)

    table = RichTable(show_header=True, header_style="bold")
    table.add_column("Rule")
    table.add_column("Severity")
    table.add_column("Message")
    for finding in findings:
        style = SEVERITY_STYLES.get(finding.severity.value, "white")
        table.add_row(
            finding.rule_id, f"[{style}]{finding.severity.value}[/{style}]", finding.message
        )
    console.print()
    console.print(table)

    counts = summarize_findings(findings)
    console.print(", ".join(f"{k}: {v}" for k, v in counts.items()))
    console.print()
    raise typer.Exit(1 if counts.get("errors", 0) else 0)
