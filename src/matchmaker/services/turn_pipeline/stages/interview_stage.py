"""
Interview stage: reply to the user and judge summary readiness.

Outputs InterviewOutput contract.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from ..base import GenerationStage
from matchmaker.domain.models.stage_contracts import InterviewOutput
from matchmaker.llm.prompts.interview import (
    INTERVIEW_EXPECTED_SHAPE,
    get_interview_system_prompt,
    get_interview_user_prompt,
)


@dataclass
class InterviewInput:
    """Inputs for one interview turn."""

    conversation_history: str
    latest_user_message: str
    filters: Dict[str, Any] = field(default_factory=dict)
    soft_cap_reached: bool = False


class InterviewStage(GenerationStage[InterviewInput, InterviewOutput]):
    """Empathetic interviewer turn."""

    name = "interview"
    output_model = InterviewOutput
    expected_shape = INTERVIEW_EXPECTED_SHAPE
    temperature = 0.8
    max_tokens = 600

    def build_prompts(self, inputs: InterviewInput) -> Tuple[str, str]:
        return get_interview_system_prompt(), get_interview_user_prompt(
            conversation_history=inputs.conversation_history,
            latest_user_message=inputs.latest_user_message,
            filters_json=json.dumps(inputs.filters, ensure_ascii=False),
            soft_cap_reached=inputs.soft_cap_reached,
        )
