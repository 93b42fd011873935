"""Stage prompts and response decoding."""

from matchmaker.llm.prompts.parsing import parse_json_object, strip_markdown_fences

__all__ = [
    "parse_json_object",
    "strip_markdown_fences",
]
