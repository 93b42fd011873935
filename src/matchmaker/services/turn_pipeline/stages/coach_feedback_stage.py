"""
Coach-Feedback stage: acknowledge the user's reaction to a match.
"""

from dataclasses import dataclass
from typing import Tuple

from ..base import GenerationStage
from matchmaker.domain.models.session import MatchNarrative
from matchmaker.domain.models.stage_contracts import FeedbackOutput
from matchmaker.llm.prompts.feedback import (
    FEEDBACK_EXPECTED_SHAPE,
    get_feedback_system_prompt,
    get_feedback_user_prompt,
)


@dataclass
class CoachFeedbackInput:
    feedback: str
    narrative: MatchNarrative


class CoachFeedbackStage(GenerationStage[CoachFeedbackInput, FeedbackOutput]):
    name = "feedback"
    output_model = FeedbackOutput
    expected_shape = FEEDBACK_EXPECTED_SHAPE
    max_tokens = 400

    def build_prompts(self, inputs: CoachFeedbackInput) -> Tuple[str, str]:
        return get_feedback_system_prompt(), get_feedback_user_prompt(
            user_feedback=inputs.feedback,
            match_summary_json=inputs.narrative.model_dump_json(by_alias=True),
        )
