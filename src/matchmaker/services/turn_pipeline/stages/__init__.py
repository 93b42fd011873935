"""
Generation stages.

Each stage is a one-shot call: phase-scoped inputs in, validated contract
out. The session state machine decides which stage runs when.
"""

from .interview_stage import InterviewInput, InterviewStage
from .summarize_stage import SummarizeInput, SummarizeStage
from .narrate_match_stage import NarrateMatchInput, NarrateMatchStage
from .coach_feedback_stage import CoachFeedbackInput, CoachFeedbackStage
from .profile_wrapup_stage import ProfileWrapupInput, ProfileWrapupStage

__all__ = [
    "InterviewInput",
    "InterviewStage",
    "SummarizeInput",
    "SummarizeStage",
    "NarrateMatchInput",
    "NarrateMatchStage",
    "CoachFeedbackInput",
    "CoachFeedbackStage",
    "ProfileWrapupInput",
    "ProfileWrapupStage",
]
