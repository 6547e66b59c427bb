"""CLI command implementations."""

from modeldoc.cli.commands import inspect, lint, run, stages

__all__ = ["inspect", "lint", "run", "stages"]
