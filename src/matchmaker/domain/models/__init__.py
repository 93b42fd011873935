"""Domain models package."""

from .conversation import ConversationLog, Role, Turn, Via
from .session import (
    MatchNarrative,
    PreferenceSummary,
    PresentedMatch,
    PsychologyProfile,
    Session,
    SessionPhase,
    SessionSnapshot,
    StageMetadata,
)

__all__ = [
    "ConversationLog",
    "Role",
    "Turn",
    "Via",
    "MatchNarrative",
    "PreferenceSummary",
    "PresentedMatch",
    "PsychologyProfile",
    "Session",
    "SessionPhase",
    "SessionSnapshot",
    "StageMetadata",
]
