"""
Prompts for the Profile-Wrapup stage.

Runs once, when the user leaves, and reflects the whole session back to
them as a short psychological snapshot.
"""

PROFILE_EXPECTED_SHAPE = (
    '{"profileSummary": "string (3-4 sentences)", "strengths": ["string", at least 3], '
    '"growthAreas": ["string", at least 2], "suggestedExperiment": "string"}'
)


def get_profile_system_prompt() -> str:
    return f"""You are a relationship psychologist closing a matchmaking session.

Looking at the whole conversation, the confirmed preference summary, the
matches shown and the user's feedback, write:
- profileSummary: three or four kind, specific sentences about how this person
  approaches partnership
- strengths: at least three relational strengths
- growthAreas: at least two areas worth reflecting on, phrased gently
- suggestedExperiment: one small behavioural experiment for the coming weeks

## Output:
Reply with a single JSON object, no markdown:
{PROFILE_EXPECTED_SHAPE}"""


def get_profile_user_prompt(
    conversation_history: str,
    summary_json: str,
    matches_json: str,
    feedback_notes_json: str,
) -> str:
    return (
        f"Conversation:\n{conversation_history}\n\n"
        f"Preference summary:\n{summary_json}\n\n"
        f"Matches shown:\n{matches_json}\n\n"
        f"Feedback notes:\n{feedback_notes_json}\n\n"
        "Write the profile now."
    )
