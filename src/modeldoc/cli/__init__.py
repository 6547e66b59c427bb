"""CLI for the modeldoc pipeline.

Provides commands for documenting, inspecting and linting model exports.

Usage:
    modeldoc run /path/to/exports
    modeldoc inspect /path/to/exports
    modeldoc lint "DIVIDE([Profit], [Revenue])"

Environment:
    Loads .env file from current directory if present.
    Set ANTHROPIC_API_KEY for the generation stages.
"""

from modeldoc.cli.main import app, main

__all__ = ["app", "main"]
