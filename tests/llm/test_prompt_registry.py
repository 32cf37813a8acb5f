"""Tests for the prompt registry."""

import pytest

from thotnet.prompts.registry import clear_cache, get_prompt, list_prompts


class TestGetPrompt:
    """Tests for get_prompt."""

    def test_substitutes_variables(self):
        prompt = get_prompt("courses/simple", topic="Transformers", difficulty="beginner", word_count=300)
        assert '"Transformers"' in prompt
        assert "{topic}" not in prompt
        assert "300+ words" in prompt

    def test_literal_braces_survive(self):
        prompt = get_prompt("courses/simple", topic="X")
        assert '"title": "Course title"' in prompt
        assert prompt.count("{") > 0

    def test_missing_prompt(self):
        with pytest.raises(FileNotFoundError):
            get_prompt("courses/does_not_exist")

    def test_uncached_matches_cached(self):
        clear_cache()
        assert get_prompt("courses/outline", use_cache=False) == get_prompt("courses/outline")


class TestListPrompts:
    """Tests for list_prompts."""

    def test_lists_course_prompts(self):
        prompts = list_prompts()
        assert {"courses/simple", "courses/outline", "courses/module_content", "courses/system"} <= set(prompts)
        assert prompts == sorted(prompts)
