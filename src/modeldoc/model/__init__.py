"""Canonical model entities and checks over them."""

from modeldoc.model.entities import (
    Column,
    IdMaps,
    Measure,
    NormalizationStats,
    NormalizedModel,
    Relationship,
    SemanticModel,
    Table,
)
from modeldoc.model.integrity import IntegrityReport, IntegritySummary, check_integrity
from modeldoc.model.quality import DataQuality, assess_data_quality, ingestion_summary

__all__ = [
    "Column",
    "DataQuality",
    "IdMaps",
    "IntegrityReport",
    "IntegritySummary",
    "Measure",
    "NormalizationStats",
    "NormalizedModel",
    "Relationship",
    "SemanticModel",
    "Table",
    "assess_data_quality",
    "check_integrity",
    "ingestion_summary",
]
