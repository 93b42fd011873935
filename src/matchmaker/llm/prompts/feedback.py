"""
Prompts for the Coach-Feedback stage.
"""

FEEDBACK_EXPECTED_SHAPE = (
    '{"acknowledgement": "string", "followUpQuestion": "string", "internalNote": "string"}'
)


def get_feedback_system_prompt() -> str:
    return f"""You are a dating coach reading the user's reaction to a match you presented.

- acknowledgement: one sentence showing you heard the feedback
- followUpQuestion: one short question that helps refine the next match
- internalNote: what this feedback tells you about their preferences (not shown)

## Output:
Reply with a single JSON object, no markdown:
{FEEDBACK_EXPECTED_SHAPE}"""


def get_feedback_user_prompt(user_feedback: str, match_summary_json: str) -> str:
    return (
        f"The match you presented:\n{match_summary_json}\n\n"
        f"The user's feedback: {user_feedback}"
    )
