"""Merge glossary quick-reference entries with heuristic measure descriptions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from modeldoc.analysis.formats import default_format_string
from modeldoc.analysis.heuristics import describe
from modeldoc.core.merge import coalesce, pick, split_list
from modeldoc.model.entities import Measure


class EnrichedMeasure(BaseModel):
    """A measure with its documentation fields filled in."""

    name: str
    purpose: str = ""
    when_to_use: str = ""
    success_indicators: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    dax: str = ""
    folder: str = ""
    description: str = ""
    format_string: str | None = None


def _as_mapping(entry: Any) -> Mapping[str, Any]:
    if isinstance(entry, BaseModel):
        return entry.model_dump()
    return entry if isinstance(entry, Mapping) else {}


def index_quick_reference(entries: Iterable[Any]) -> dict[str, Mapping[str, Any]]:
    """Key quick-reference entries by lower-cased ``name`` or ``term``."""
    index: dict[str, Mapping[str, Any]] = {}
    for entry in entries or []:
        data = _as_mapping(entry)
        key = str(pick(data, "name", "term", default="")).strip().lower()
        if key:
            index.setdefault(key, data)
    return index


def enrich_measures(
    measures: Iterable[Measure], quick_reference: Iterable[Any] = ()
) -> list[EnrichedMeasure]:
    """Describe every measure, preferring glossary text over heuristics.

    Args:
        measures: Normalized measures
        quick_reference: Glossary metric quick-reference entries (models or dicts)

    Returns:
        One EnrichedMeasure per input measure, in input order
    """
    glossary = index_quick_reference(quick_reference)
    enriched: list[EnrichedMeasure] = []
    for measure in measures:
        heuristic = describe(measure)
        entry = glossary.get(measure.key, {})
        indicators = split_list(pick(entry, "success_indicators", "successIndicators"))
        enriched.append(
            EnrichedMeasure(
                name=measure.name,
                purpose=coalesce(pick(entry, "definition"), heuristic.purpose, default=""),
                when_to_use=coalesce(
                    pick(entry, "when_to_use", "whenToUse"), heuristic.when_to_use, default=""
                ),
                success_indicators=indicators or heuristic.success_indicators,
                risks=heuristic.risks,
                dependencies=heuristic.dependencies,
                dax=measure.expression,
                folder=measure.display_folder,
                description=measure.description,
                format_string=measure.format_string
                or default_format_string(measure.name, measure.expression),
            )
        )
    return enriched
