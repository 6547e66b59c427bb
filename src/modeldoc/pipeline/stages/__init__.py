"""Pipeline stage implementations.

Each stage is a class derived from BaseStage.
"""

from modeldoc.pipeline.stages.architecture import ArchitectureStage
from modeldoc.pipeline.stages.base import BaseStage
from modeldoc.pipeline.stages.classification import ClassificationStage
from modeldoc.pipeline.stages.glossary import GlossaryStage
from modeldoc.pipeline.stages.measure_analysis import MeasureAnalysisStage
from modeldoc.pipeline.stages.polish import PolishStage
from modeldoc.pipeline.stages.synthesis import SynthesisStage

__all__ = [
    "ArchitectureStage",
    "BaseStage",
    "ClassificationStage",
    "GlossaryStage",
    "MeasureAnalysisStage",
    "PolishStage",
    "SynthesisStage",
]
