"""CSV export sources: discovery, reading and normalization."""

from modeldoc.sources.csv.discovery import ENTITY_KINDS, FileDiscovery, discover_files
from modeldoc.sources.csv.normalizer import (
    clean_text,
    normalize_model,
    parse_bool,
    parse_relationship_string,
)
from modeldoc.sources.csv.reader import read_csv_rows

__all__ = [
    "ENTITY_KINDS",
    "FileDiscovery",
    "clean_text",
    "discover_files",
    "normalize_model",
    "parse_bool",
    "parse_relationship_string",
    "read_csv_rows",
]
