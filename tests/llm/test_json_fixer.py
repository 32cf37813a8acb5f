"""Tests for the LLM JSON repair pipeline."""

import pytest

from thotnet.utils.json_fixer import (
    JSONRepairError,
    close_truncated_json,
    escape_unescaped_quotes,
    loads_llm_json,
    parse_json,
    sanitize_and_fix_json,
)


class TestSanitize:
    """Tests for sanitize_and_fix_json and its helpers."""

    def test_markdown_fence(self):
        assert loads_llm_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        assert loads_llm_json('Here you go: {"a": [1, 2]} Hope it helps!') == {"a": [1, 2]}

    def test_fences_inside_string_survive(self):
        raw = '```json\n{"content": "Example:\n```python\nprint(1)\n```\nDone"}\n```'
        assert loads_llm_json(raw) == {"content": "Example:\n```python\nprint(1)\n```\nDone"}

    def test_raw_newlines_in_strings(self):
        assert loads_llm_json('{"content": "line1\nline2\tend"}') == {"content": "line1\nline2\tend"}

    def test_think_block_removed(self):
        assert loads_llm_json('<think>planning...</think>{"ok": true}') == {"ok": True}

    def test_bom_and_control_chars(self):
        assert loads_llm_json('\ufeff{"a": "b\x07"}') == {"a": "b"}

    def test_valid_json_unchanged_by_quote_fix(self):
        text = '{"a": "x", "b": ["y", "z"], "c": {"d": "e"}}'
        assert escape_unescaped_quotes(text) == text

    def test_stray_quotes_escaped(self):
        assert loads_llm_json('{"title": "The "best" course"}') == {"title": 'The "best" course'}

    def test_sanitize_returns_string(self):
        assert sanitize_and_fix_json('  {"a": 1}  ') == '{"a": 1}'


class TestParseJson:
    """Tests for parse_json escalation."""

    def test_trailing_commas(self):
        assert parse_json('{"a": [1, 2,],}') == {"a": [1, 2]}

    def test_invalid_backslashes(self):
        assert parse_json(r'{"path": "C:\Users\x"}') == {"path": r"C:\Users\x"}

    def test_truncated_inside_string(self):
        text = '{"title": "Course", "modules": [{"title": "One"}, {"title": "Tw'
        assert parse_json(text) == {"title": "Course", "modules": [{"title": "One"}, {"title": "Tw"}]}

    def test_truncated_after_colon(self):
        assert parse_json('{"a": 1, "b":') == {"a": 1, "b": None}

    def test_unrepairable(self):
        with pytest.raises(JSONRepairError) as exc_info:
            parse_json("not json at all", context="outline")
        assert "outline" in str(exc_info.value)
        assert exc_info.value.diagnostics["length"] == len("not json at all")

    def test_repair_error_is_value_error(self):
        assert issubclass(JSONRepairError, ValueError)

    def test_empty_response(self):
        with pytest.raises(JSONRepairError, match="empty response"):
            loads_llm_json("   ")


class TestCloseTruncated:
    """Tests for close_truncated_json."""

    def test_closes_open_brackets(self):
        assert close_truncated_json('{"a": [1, 2') == '{"a": [1, 2]}'

    def test_backs_off_to_last_comma(self):
        assert close_truncated_json('{"a": 1, "b": tru') == '{"a": 1}'

    def test_hopeless(self):
        assert close_truncated_json("nope") is None
