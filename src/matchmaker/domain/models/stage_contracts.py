"""Pipeline stage contracts.

Pydantic models for the structured output of each generation stage. Raw
model output is decoded against these at the stage boundary; nothing
unvalidated travels past it.

Keys are camelCase on the wire (what the prompts ask for); snake_case is
accepted too.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from matchmaker.domain.models.session import (
    MatchNarrative,
    PreferenceSummary,
    PsychologyProfile,
    SearchPayload,
    SummaryBody,
    WireModel,
)

MAX_REPLY_CHARS = 1200


def _strip_items(items: List[str]) -> List[str]:
    return [item.strip() for item in items if item and item.strip()]


class InterviewOutput(WireModel):
    """Contract: Interview stage output."""

    reply: str = Field(min_length=1, max_length=MAX_REPLY_CHARS)
    ready_for_summary: bool
    coaching_note: Optional[str] = None


class SummaryOutput(WireModel):
    """Contract: Summarize stage output.

    Three traits and two dealbreakers are asked for in the prompt; validation
    only insists on at least one of each.
    """

    headline: str = Field(min_length=1)
    synopsis: str = Field(min_length=1)
    traits: List[str] = Field(min_length=1)
    dealbreakers: List[str] = Field(min_length=1)
    search_vector_prompt: str = Field(min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    _clean_lists = field_validator("traits", "dealbreakers")(_strip_items)

    def to_preference_summary(self) -> PreferenceSummary:
        return PreferenceSummary(
            summary=SummaryBody(
                headline=self.headline,
                synopsis=self.synopsis,
                traits=self.traits,
                dealbreakers=self.dealbreakers,
            ),
            search_payload=SearchPayload(
                search_vector_prompt=self.search_vector_prompt,
                metadata=self.metadata,
            ),
        )


class MatchNarrativeOutput(WireModel):
    """Contract: Narrate-Match stage output."""

    title: str = Field(min_length=1)
    blurb: str = Field(min_length=1)
    compatibility_reasons: List[str] = Field(min_length=1, max_length=3)
    tone: str = ""
    call_to_action: str = Field(min_length=1)

    def to_narrative(self) -> MatchNarrative:
        return MatchNarrative(
            title=self.title,
            blurb=self.blurb,
            compatibility_reasons=self.compatibility_reasons,
            call_to_action=self.call_to_action,
            tone=self.tone or None,
        )


class FeedbackOutput(WireModel):
    """Contract: Coach-Feedback stage output."""

    acknowledgement: str = Field(min_length=1)
    follow_up_question: str = Field(min_length=1)
    internal_note: str = ""

    @property
    def reply(self) -> str:
        return f"{self.acknowledgement} {self.follow_up_question}"


class ProfileOutput(WireModel):
    """Contract: Profile-Wrapup stage output."""

    profile_summary: str = Field(min_length=1)
    strengths: List[str] = Field(min_length=3)
    growth_areas: List[str] = Field(min_length=2)
    suggested_experiment: str = Field(min_length=1)

    def to_profile(self) -> PsychologyProfile:
        return PsychologyProfile(
            profile_summary=self.profile_summary,
            strengths=self.strengths,
            growth_areas=self.growth_areas,
            suggested_experiment=self.suggested_experiment,
        )
