"""Locate the entity exports inside an input directory."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field

from modeldoc.core.logging import get_logger
from modeldoc.core.models import Result

logger = get_logger(__name__)

ENTITY_KINDS = ("measures", "tables", "columns", "relationships")

# Matched against the lower-cased file name.
_PATTERNS: dict[str, re.Pattern[str]] = {
    "measures": re.compile(r".*measures.*\.csv$"),
    "tables": re.compile(r".*tables.*\.csv$"),
    "columns": re.compile(r".*columns.*\.csv$"),
    "relationships": re.compile(r".*relationships.*\.csv$|^relation.*\.csv$"),
}


class FileDiscovery(BaseModel):
    """Which export file was found for each entity kind."""

    directory: Path
    files: dict[str, Path] = Field(default_factory=dict)

    @property
    def found(self) -> list[str]:
        return [kind for kind in ENTITY_KINDS if kind in self.files]

    @property
    def missing(self) -> list[str]:
        return [kind for kind in ENTITY_KINDS if kind not in self.files]

    def path_for(self, kind: str) -> Path | None:
        return self.files.get(kind)


def discover_files(directory: str | Path) -> Result[FileDiscovery]:
    """Match export files to entity kinds by case-insensitive file name.

    The first match in sorted order wins. A kind with no match is reported as
    missing rather than failing discovery.

    Args:
        directory: Directory holding the CSV exports

    Returns:
        Result containing the discovery, or a failure if the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        return Result.fail(f"Input directory not found: {directory}")

    candidates = sorted(p for p in directory.iterdir() if p.is_file())
    discovery = FileDiscovery(directory=directory)
    for kind in ENTITY_KINDS:
        for path in candidates:
            if _PATTERNS[kind].match(path.name.lower()):
                discovery.files[kind] = path
                break

    warnings = [f"No {kind} CSV found in {directory}" for kind in discovery.missing]
    logger.info("files_discovered", found=discovery.found, missing=discovery.missing)
    return Result.ok(discovery, warnings)
