"""Shared CLI utilities and constants."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from modeldoc.core.logging import configure_logging

# Load .env file from current directory (for API keys, etc.)
load_dotenv()

# Shared console instance
console = Console()

# Common type aliases for typer arguments and options
SourceDirArg = Annotated[
    Path,
    typer.Argument(
        help="Directory containing the measures/tables/columns/relationships CSV exports",
        exists=True,
        dir_okay=True,
        file_okay=False,
        resolve_path=True,
    ),
]

MaxMeasuresOption = Annotated[
    int | None,
    typer.Option(
        "--max-measures",
        "-m",
        min=1,
        help="Only keep the first N measures after de-duplication",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v=INFO, -vv=DEBUG)",
    ),
]

LogFormatOption = Annotated[
    str,
    typer.Option(
        "--log-format",
        help="Log output format (console or json)",
    ),
]


def setup_logging(verbosity: int = 0, log_format: str = "console") -> None:
    """Configure structured logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
        log_format: "console" for development, "json" for production/cloud
    """
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity >= 1:
        level = "INFO"
    else:
        level = "WARNING"

    configure_logging(
        log_level=level,
        log_format=log_format,
        show_timestamps=verbosity >= 1,
        color=log_format == "console",
    )


def print_warnings(warnings: list[str]) -> None:
    if not warnings:
        return
    console.print()
    console.print("[yellow]Warnings:[/yellow]")
    for warning in warnings:
        console.print(f"  - {warning}")
