"""
Pipeline orchestrator for generation stages.

TurnPipeline owns one instance of every stage and runs them one at a time
on behalf of the session state machine, with timing and error logging.
"""

import time
from typing import Optional, TypeVar

import structlog
from pydantic import BaseModel

from matchmaker.llm.client import LLMClient

from .base import GenerationStage
from .result import StageResult
from .stages import (
    CoachFeedbackStage,
    InterviewStage,
    NarrateMatchStage,
    ProfileWrapupStage,
    SummarizeStage,
)

log = structlog.get_logger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT", bound=BaseModel)


class TurnPipeline:
    """
    Holds the five generation stages and executes them on demand.

    Which stage runs when is decided by the caller; the pipeline only
    adds timing and logging around a single stage call.
    """

    def __init__(self, llm_client: LLMClient, stage_timeout: Optional[float] = None):
        """
        Args:
            llm_client: Text-generation client shared by all stages
            stage_timeout: Per-stage upper bound in seconds
        """
        self.interview = InterviewStage(llm_client, timeout=stage_timeout)
        self.summarize = SummarizeStage(llm_client, timeout=stage_timeout)
        self.narrate_match = NarrateMatchStage(llm_client, timeout=stage_timeout)
        self.coach_feedback = CoachFeedbackStage(llm_client, timeout=stage_timeout)
        self.profile_wrapup = ProfileWrapupStage(llm_client, timeout=stage_timeout)
        self.logger = log

    async def run(
        self, stage: GenerationStage[InputT, OutputT], inputs: InputT
    ) -> StageResult[OutputT]:
        """
        Execute one stage.

        Raises:
            Exception: Whatever the stage raised, after logging it
        """
        stage_start = time.perf_counter()
        self.logger.debug("stage_started", stage_name=stage.stage_name)

        try:
            result = await stage.process(inputs)
        except Exception as e:
            self.logger.error(
                "stage_failed",
                stage_name=stage.stage_name,
                error=str(e),
                duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
            )
            raise

        self.logger.info(
            "stage_completed",
            stage_name=stage.stage_name,
            duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
            model=result.metadata.model,
        )
        return result
