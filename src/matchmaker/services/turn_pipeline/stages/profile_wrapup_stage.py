"""
Profile-Wrapup stage: the closing psychological snapshot.

Runs exactly once per session, on the transition to ended.
"""

import json
from dataclasses import dataclass, field
from typing import List, Tuple

from ..base import GenerationStage
from matchmaker.domain.models.session import MatchNarrative, PreferenceSummary
from matchmaker.domain.models.stage_contracts import ProfileOutput
from matchmaker.llm.prompts.profile import (
    PROFILE_EXPECTED_SHAPE,
    get_profile_system_prompt,
    get_profile_user_prompt,
)


@dataclass
class ProfileWrapupInput:
    conversation_history: str
    summary: PreferenceSummary
    matches: List[MatchNarrative] = field(default_factory=list)
    feedback_notes: List[str] = field(default_factory=list)


class ProfileWrapupStage(GenerationStage[ProfileWrapupInput, ProfileOutput]):
    name = "psychology"
    output_model = ProfileOutput
    expected_shape = PROFILE_EXPECTED_SHAPE
    temperature = 0.5

    def build_prompts(self, inputs: ProfileWrapupInput) -> Tuple[str, str]:
        matches_json = json.dumps(
            [m.model_dump(by_alias=True) for m in inputs.matches], ensure_ascii=False
        )
        return get_profile_system_prompt(), get_profile_user_prompt(
            conversation_history=inputs.conversation_history,
            summary_json=inputs.summary.model_dump_json(by_alias=True),
            matches_json=matches_json,
            feedback_notes_json=json.dumps(inputs.feedback_notes, ensure_ascii=False),
        )
