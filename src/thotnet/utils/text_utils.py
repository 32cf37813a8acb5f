"""Text processing utilities.

Common text manipulation functions used across modules.
"""

from __future__ import annotations

import re

# Reasoning blocks some models emit before their answer
THINK_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]

SUPPORTED_LOCALES = ("en", "es")


def strip_think(text: str) -> str:
    """Remove thinking/reasoning blocks from LLM output.

    Removes closed <think>, <thinking>, <analysis> and <reasoning> blocks.
    An unterminated opening tag is left in place.

    Args:
        text: Raw LLM output text

    Returns:
        Cleaned text without thinking artifacts
    """
    result = text
    for pattern in THINK_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def normalize_locale(locale: str | None) -> str:
    """Return "es" for Spanish locales, "en" for anything else."""
    if locale and locale.lower().startswith("es"):
        return "es"
    return "en"


def localized(value_en: str | None, value_es: str | None, locale: str) -> str:
    """Pick the field for a locale, falling back to the other one when empty."""
    if normalize_locale(locale) == "es":
        return value_es or value_en or ""
    return value_en or value_es or ""


def word_count(text: str) -> int:
    return len(text.split())
