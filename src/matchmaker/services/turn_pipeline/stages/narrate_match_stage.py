"""
Narrate-Match stage: turn a raw search hit into a presentable match.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..base import GenerationStage
from matchmaker.domain.models.session import PreferenceSummary
from matchmaker.domain.models.stage_contracts import MatchNarrativeOutput
from matchmaker.llm.prompts.match import (
    MATCH_EXPECTED_SHAPE,
    get_match_system_prompt,
    get_match_user_prompt,
)


@dataclass
class NarrateMatchInput:
    summary: PreferenceSummary
    candidate_id: Optional[str]
    vector_score: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    feedback_hints: List[str] = field(default_factory=list)


class NarrateMatchStage(GenerationStage[NarrateMatchInput, MatchNarrativeOutput]):
    """Candidate narration."""

    name = "match"
    output_model = MatchNarrativeOutput
    expected_shape = MATCH_EXPECTED_SHAPE

    def build_prompts(self, inputs: NarrateMatchInput) -> Tuple[str, str]:
        match_context = {
            "vectorScore": inputs.vector_score,
            "metadata": inputs.metadata,
            "candidateId": inputs.candidate_id,
        }
        return get_match_system_prompt(), get_match_user_prompt(
            summary_json=inputs.summary.model_dump_json(by_alias=True),
            match_context_json=json.dumps(match_context, ensure_ascii=False, default=str),
            feedback_hints_json=json.dumps(inputs.feedback_hints, ensure_ascii=False),
        )
