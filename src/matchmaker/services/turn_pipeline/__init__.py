"""Generation pipeline: stage base class, concrete stages and the runner."""

from .base import GenerationStage
from .pipeline import TurnPipeline
from .result import StageResult

__all__ = ["GenerationStage", "StageResult", "TurnPipeline"]
