"""
Prompts for the Narrate-Match stage, plus the chat rendering of a match.
"""

from matchmaker.domain.models.session import MatchNarrative

MATCH_EXPECTED_SHAPE = (
    '{"title": "string", "blurb": "string", "compatibilityReasons": ["string", max 3], '
    '"tone": "string", "callToAction": "string"}'
)


def get_match_system_prompt() -> str:
    return f"""You are a matchmaker presenting one candidate to a friend.

Using the preference summary and the candidate's profile data, write:
- title: a short, inviting name for this match
- blurb: three or four sentences introducing the candidate
- compatibilityReasons: up to three concrete reasons they might fit,
  each tied to something in the summary
- tone: one word describing the voice you used
- callToAction: one sentence inviting the user to react

Respect recent feedback: avoid repeating what the user disliked.
Only use facts present in the candidate data; never invent names or details.

## Output:
Reply with a single JSON object, no markdown:
{MATCH_EXPECTED_SHAPE}"""


def get_match_user_prompt(summary_json: str, match_context_json: str, feedback_hints_json: str) -> str:
    return (
        f"Preference summary:\n{summary_json}\n\n"
        f"Candidate context:\n{match_context_json}\n\n"
        f"Recent feedback from the user:\n{feedback_hints_json}\n\n"
        "Present the candidate now."
    )


def format_match_for_chat(narrative: MatchNarrative) -> str:
    """Render a narrated match as a chat message."""
    return "\n".join(
        [
            narrative.title,
            "",
            narrative.blurb,
            "",
            "Why it might fit:",
            *[f"• {reason}" for reason in narrative.compatibility_reasons],
            "",
            narrative.call_to_action,
        ]
    )
