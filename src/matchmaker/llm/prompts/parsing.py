"""
Decoding helpers shared by every stage prompt.

Turns raw model text into a JSON object. Syntax slips (markdown fences,
missing or trailing commas) are repaired; missing or mistyped fields are
never filled in here, that is the job of the stage contract to reject.
"""

import json
import re
from typing import Any, Dict

import structlog

log = structlog.get_logger(__name__)


def strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from LLM response."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def repair_json(text: str) -> str:
    """Attempt to repair common LLM JSON generation errors.

    Handles two frequent failure modes:
    1. Missing commas between properties ("key": value "key2": value2)
    2. Trailing commas before closing brackets ([...,] or {...,})
    """
    # Missing commas at line breaks: "value"\n"key"
    text = re.sub(r"(\")\s*\n\s*(\")", r"\1,\n\2", text)
    text = re.sub(r"(\d)\s*\n\s*(\")", r"\1,\n\2", text)
    text = re.sub(r"(true|false|null)\s*\n\s*(\")", r"\1,\n\2", text)
    text = re.sub(r'(\]|\})\s*\n\s*(\"[A-Za-z_]+"?\s*:)', r"\1,\n\2", text)
    # Same-line missing commas: "value" "key":
    text = re.sub(r'(\")\s+(\"[A-Za-z_]+"?\s*:)', r"\1, \2", text)

    text = re.sub(r",\s*\]", "]", text)
    text = re.sub(r",\s*\}", "}", text)
    return text


def parse_json_object(response_text: str) -> Dict[str, Any]:
    """
    Parse an LLM response that should contain a single JSON object.

    Args:
        response_text: Raw LLM response

    Returns:
        Parsed dict

    Raises:
        ValueError: If the text is not a JSON object even after repair
    """
    text = strip_markdown_fences(response_text)
    if not text:
        raise ValueError("Empty response")

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        repaired = repair_json(text)
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in response: {e}")
        log.warning(
            "stage_json_repaired",
            original_length=len(text),
            repaired_length=len(repaired),
        )

    if not isinstance(data, dict):
        raise ValueError("Response must be a JSON object")

    return data
