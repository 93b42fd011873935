"""
Summarize stage: condense the interview into a preference summary.

Outputs SummaryOutput contract; only its search vector prompt is forwarded
to the embedding client.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from ..base import GenerationStage
from matchmaker.domain.models.stage_contracts import SummaryOutput
from matchmaker.llm.prompts.summary import (
    SUMMARY_EXPECTED_SHAPE,
    get_summary_system_prompt,
    get_summary_user_prompt,
)


@dataclass
class SummarizeInput:
    conversation_history: str
    filters: Dict[str, Any] = field(default_factory=dict)


class SummarizeStage(GenerationStage[SummarizeInput, SummaryOutput]):
    """Preference synthesis."""

    name = "summary"
    output_model = SummaryOutput
    expected_shape = SUMMARY_EXPECTED_SHAPE
    temperature = 0.3

    def build_prompts(self, inputs: SummarizeInput) -> Tuple[str, str]:
        return get_summary_system_prompt(), get_summary_user_prompt(
            conversation_history=inputs.conversation_history,
            filters_json=json.dumps(inputs.filters, ensure_ascii=False),
        )
