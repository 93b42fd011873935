"""
Prompts for the Summarize stage.

Condenses the interview into a preference summary plus the text that gets
embedded for the similarity search.
"""

SUMMARY_EXPECTED_SHAPE = (
    '{"headline": "string", "synopsis": "string", "traits": ["string"], '
    '"dealbreakers": ["string"], "searchVectorPrompt": "string", '
    '"metadata": {"key": "string"}}'
)


def get_summary_system_prompt() -> str:
    return f"""You are Summon, a listening psychologist who understands what people need
from a long-term partnership.

Read the matchmaker conversation and write a summary of the partner the user is
looking for:
- headline: one warm line
- synopsis: two or three sentences in the user's own spirit
- traits: at least three qualities they value
- dealbreakers: at least two things they will not accept
- searchVectorPrompt: one paragraph describing the ideal partner in the third
  person, written to be embedded and compared against partner profiles
- metadata: string attributes stated explicitly by the user that can be used as
  exact-match filters (for example "location"), or an empty object

## Output:
Reply with a single JSON object, no markdown:
{SUMMARY_EXPECTED_SHAPE}"""


def get_summary_user_prompt(conversation_history: str, filters_json: str) -> str:
    return (
        f"Conversation:\n{conversation_history}\n\n"
        f"Search filters the user selected: {filters_json}\n\n"
        "Write the summary now."
    )
