"""Core infrastructure: models, configuration, logging and merge helpers."""

from modeldoc.core.config import Settings, get_settings
from modeldoc.core.logging import configure_logging, get_logger, log_context
from modeldoc.core.merge import (
    as_float,
    as_int,
    as_mapping,
    as_records,
    as_text,
    coalesce,
    dedupe,
    is_present,
    pick,
    split_list,
)
from modeldoc.core.models import Result

__all__ = [
    "Result",
    "Settings",
    "as_float",
    "as_int",
    "as_mapping",
    "as_records",
    "as_text",
    "coalesce",
    "configure_logging",
    "dedupe",
    "get_logger",
    "get_settings",
    "is_present",
    "log_context",
    "pick",
    "split_list",
]
