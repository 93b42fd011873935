"""Tests for stage output decoding helpers."""

import pytest

from matchmaker.llm.prompts.parsing import (
    parse_json_object,
    repair_json,
    strip_markdown_fences,
)


class TestStripMarkdownFences:
    def test_json_fence(self):
        assert strip_markdown_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_markdown_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_markdown_fences('  {"a": 1} ') == '{"a": 1}'


class TestRepairJson:
    def test_trailing_commas(self):
        assert repair_json('{"a": [1, 2,],}') == '{"a": [1, 2]}'

    def test_missing_comma_between_lines(self):
        repaired = repair_json('{"a": "x"\n"b": "y"}')
        assert repaired == '{"a": "x",\n"b": "y"}'


class TestParseJsonObject:
    def test_plain_object(self):
        assert parse_json_object('{"reply": "hi"}') == {"reply": "hi"}

    def test_fenced_object(self):
        assert parse_json_object('```json\n{"reply": "hi"}\n```') == {"reply": "hi"}

    def test_repairable_object(self):
        assert parse_json_object('{"reply": "hi",}') == {"reply": "hi"}

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="Empty"):
            parse_json_object("   ")

    def test_invalid_raises(self):
        with pytest.raises(ValueError, match="Invalid JSON"):
            parse_json_object("I am not JSON at all")

    def test_non_object_raises(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_json_object('["a", "b"]')
