"""Course and module normalization for API responses.

Stored rows can carry partial data (one locale only, missing durations,
free-form difficulty). Everything leaving the API goes through here.
"""

from __future__ import annotations

import math
import re
from typing import Any

from thotnet.db.courses_repository import CourseRecord, ModuleRecord
from thotnet.utils.text_utils import localized, word_count

DEFAULT_DURATION_MINUTES = 15
MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 120
WORDS_PER_MINUTE = 200

DIFFICULTIES = ("beginner", "intermediate", "advanced")
CONTENT_TYPES = ("video", "article", "quiz", "interactive")

_DIFFICULTY_ALIASES = {
    "beginner": "beginner",
    "basic": "beginner",
    "easy": "beginner",
    "intro": "beginner",
    "introductory": "beginner",
    "principiante": "beginner",
    "basico": "beginner",
    "básico": "beginner",
    "intermediate": "intermediate",
    "medium": "intermediate",
    "intermedio": "intermediate",
    "advanced": "advanced",
    "expert": "advanced",
    "hard": "advanced",
    "avanzado": "advanced",
}

_CODE_BLOCK = re.compile(r"```.*?```", re.DOTALL)
_INLINE_CODE = re.compile(r"`[^`]*`")
_MD_LINK = re.compile(r"\[(.*?)\]\((.*?)\)")
_MD_MARKS = re.compile(r"[>*#_\-]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]")


def normalize_difficulty(value: str | None) -> str:
    """Map a free-form difficulty onto beginner/intermediate/advanced."""
    if not value:
        return "beginner"
    return _DIFFICULTY_ALIASES.get(value.strip().lower(), "beginner")


def normalize_duration(value: Any) -> int:
    """Clamp a module duration to 5..120 minutes (15 when not numeric)."""
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return DEFAULT_DURATION_MINUTES

    if not math.isfinite(minutes):
        return DEFAULT_DURATION_MINUTES

    return max(MIN_DURATION_MINUTES, min(MAX_DURATION_MINUTES, round(minutes)))


def estimate_duration(content: str) -> int:
    """Reading time for content at 200 words per minute, clamped."""
    if not content:
        return DEFAULT_DURATION_MINUTES
    words = word_count(content)
    return normalize_duration(words / WORDS_PER_MINUTE)


def normalize_content_type(value: str | None) -> str:
    return value if value in CONTENT_TYPES else "article"


def normalize_resources(resources: Any) -> list[dict]:
    """Keep only resources with both a title and a URL."""
    if not isinstance(resources, list):
        return []

    result = []
    for resource in resources:
        if not isinstance(resource, dict):
            continue
        title = resource.get("title")
        url = resource.get("url")
        title = title.strip() if isinstance(title, str) else ""
        url = url.strip() if isinstance(url, str) else ""
        if not title or not url:
            continue
        rtype = resource.get("type")
        result.append({"title": title, "url": url, "type": rtype if isinstance(rtype, str) else None})
    return result


def summarize_content(content: str, max_chars: int = 280) -> str:
    """First two sentences of markdown content as plain text."""
    if not content:
        return ""

    text = _INLINE_CODE.sub(" ", _CODE_BLOCK.sub(" ", content))
    text = _MD_LINK.sub(r"\1", text)
    text = _WHITESPACE.sub(" ", _MD_MARKS.sub(" ", text)).strip()
    if not text:
        return ""

    sentences = [s.strip() for s in _SENTENCE_END.split(text) if s.strip()]
    summary = ". ".join(sentences[:2])
    if len(summary) > max_chars:
        return summary[: max_chars - 3] + "..."
    return summary


def normalize_module(module: ModuleRecord, locale: str = "en") -> dict:
    """Localized module dict with both-locale fallbacks applied."""
    title_en = module.title_en or module.title_es or "Module"
    title_es = module.title_es or module.title_en or "Módulo"
    content = localized(module.content_en, module.content_es, locale)
    duration = module.estimated_time if module.estimated_time else estimate_duration(content)

    return {
        "id": module.id,
        "course_id": module.course_id,
        "order_index": module.order_index,
        "title": title_es if locale == "es" else title_en,
        "title_en": title_en,
        "title_es": title_es,
        "content": content,
        "description": summarize_content(content),
        "duration_minutes": normalize_duration(duration),
        "content_type": normalize_content_type(module.type),
        "is_free": module.order_index == 0,
        "resources": normalize_resources(module.resources),
    }


def normalize_course(
    course: CourseRecord,
    modules: list[ModuleRecord] | None = None,
    locale: str = "en",
) -> dict:
    """Localized course dict; modules are included (ordered) when given."""
    normalized_modules = sorted(
        (normalize_module(m, locale) for m in modules or []),
        key=lambda m: m["order_index"],
    )
    duration = course.duration_minutes or sum(m["duration_minutes"] for m in normalized_modules)

    data = {
        "id": course.id,
        "title": localized(course.title_en, course.title_es, locale),
        "description": localized(course.description_en, course.description_es, locale),
        "title_en": course.title_en or course.title_es,
        "title_es": course.title_es or course.title_en,
        "difficulty": normalize_difficulty(course.difficulty),
        "duration_minutes": duration,
        "topics": [t for t in course.topics if isinstance(t, str) and t.strip()],
        "category": course.category,
        "status": course.status,
        "ai_generated": course.ai_generated,
        "thumbnail_url": course.thumbnail_url,
        "enrollment_count": course.enrollment_count,
        "rating_avg": course.rating_avg,
        "view_count": course.view_count,
        "created_at": course.created_at,
        "locale": locale,
    }
    if modules is not None:
        data["modules"] = normalized_modules
        data["modules_count"] = len(normalized_modules)
    return data
