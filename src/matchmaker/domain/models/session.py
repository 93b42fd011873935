"""Session domain models for the matchmaking conversation.

Core Models:
    - SessionPhase: the single source of truth for which actions are legal
    - PreferenceSummary: structured synthesis of what the user is looking for
    - PresentedMatch: a narrated candidate shown to the user
    - PsychologyProfile: the final wrap-up, set exactly once
    - Session: one conversation's mutable state
    - SessionSnapshot: render-ready view returned after every action

Phase Lifecycle:
    collecting -> awaiting_confirmation -> matching -> feedback -> ended
    awaiting_confirmation -> collecting       (user revises)
    feedback -> matching -> feedback          (another match)

Wire format:
    Models serialize with camelCase aliases (``agentReply``, ``searchPayload``)
    and accept either camelCase or snake_case on input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from matchmaker.domain.models.conversation import ConversationLog


class WireModel(BaseModel):
    """Base model with camelCase aliases for the HTTP wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionPhase(str, Enum):
    """Conversation phase.

    Values:
        - COLLECTING: interview in progress (initial)
        - AWAITING_CONFIRMATION: summary produced, waiting for the user
        - MATCHING: similarity search and narration running (transient)
        - FEEDBACK: a search completed, collecting reactions
        - ENDED: profile produced (terminal)
    """

    COLLECTING = "collecting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    MATCHING = "matching"
    FEEDBACK = "feedback"
    ENDED = "ended"


class SummaryBody(WireModel):
    headline: str
    synopsis: str
    traits: List[str] = Field(default_factory=list)
    dealbreakers: List[str] = Field(default_factory=list)


class SearchPayload(WireModel):
    """What the matching step consumes.

    Only search_vector_prompt is embedded; metadata feeds the equality filter.
    """

    search_vector_prompt: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PreferenceSummary(WireModel):
    summary: SummaryBody
    search_payload: SearchPayload


class MatchNarrative(WireModel):
    title: str
    blurb: str
    compatibility_reasons: List[str] = Field(default_factory=list)
    call_to_action: str
    tone: Optional[str] = None


class PresentedMatch(WireModel):
    id: str
    narrative: MatchNarrative
    vector_score: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    accepted: bool = False


class PsychologyProfile(WireModel):
    profile_summary: str
    strengths: List[str]
    growth_areas: List[str]
    suggested_experiment: str


class StageMetadata(WireModel):
    """Execution metadata for one stage call, kept for observability."""

    stage: str
    model: str = ""
    latency_ms: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0


class Session(BaseModel):
    """One matchmaking conversation.

    Mutated only by SessionStateMachine, always while the store's per-session
    lock is held.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    phase: SessionPhase = SessionPhase.COLLECTING
    filters: Dict[str, Any] = Field(default_factory=dict)
    log: ConversationLog = Field(default_factory=ConversationLog)
    turn_count: int = 0
    interview_turn_count: int = 0
    ready_for_summary: bool = False
    preference_summary: Optional[PreferenceSummary] = None
    current_match: Optional[PresentedMatch] = None
    match_history: List[PresentedMatch] = Field(default_factory=list)
    match_iteration: int = 0
    accepted_match_id: Optional[str] = None
    feedback_notes: List[str] = Field(default_factory=list)
    psychology_profile: Optional[PsychologyProfile] = None
    stage_stats: Dict[str, StageMetadata] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def merge_filters(self, update: Optional[Dict[str, Any]]) -> None:
        """Merge (never replace) a filter update into the session filters."""
        if update:
            self.filters = {**self.filters, **update}

    def soft_cap_reached(self, threshold: int) -> bool:
        return self.turn_count >= threshold


class SessionSnapshot(WireModel):
    """Render-ready view of a session after one action."""

    session_id: str
    phase: SessionPhase
    agent_reply: Optional[str] = None
    summary: Optional[PreferenceSummary] = None
    match: Optional[PresentedMatch] = None
    profile_summary: Optional[PsychologyProfile] = None
    transcript: Optional[str] = None
    turn_count: int = 0
    soft_cap: bool = False
    nudge: bool = False
    filters: Dict[str, Any] = Field(default_factory=dict)
    stats: Optional[Dict[str, StageMetadata]] = None
