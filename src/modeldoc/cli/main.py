"""Main CLI application entry point."""

from __future__ import annotations

import typer

from modeldoc.cli.commands import inspect, lint, run, stages

app = typer.Typer(
    name="modeldoc",
    help="modeldoc - document Power BI semantic models from CSV exports.",
    no_args_is_help=True,
)

# Register commands
app.command()(run.run)
app.command()(inspect.inspect)
app.command()(lint.lint)
app.command()(stages.stages)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
