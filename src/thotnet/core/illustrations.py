"""Best-effort course cover illustrations.

Run as a FastAPI background task after a course is stored. Any failure is
logged as a warning and the course simply keeps its fallback cover.
"""

from __future__ import annotations

import structlog

from thotnet.db import courses_repository
from thotnet.db.database import Database
from thotnet.llm.client import LLMClient, LLMError
from thotnet.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

COVER_SIZE = "1792x1024"

CATEGORY_GRADIENTS: dict[str, tuple[str, str]] = {
    "machine-learning": ("#2563eb", "#0ea5e9"),
    "natural-language-processing": ("#3b82f6", "#06b6d4"),
    "computer-vision": ("#10b981", "#14b8a6"),
    "generative-ai": ("#8b5cf6", "#ec4899"),
    "ethics-safety": ("#ef4444", "#f97316"),
    "research": ("#2563eb", "#22d3ee"),
    "ai-tools": ("#14b8a6", "#10b981"),
}
DEFAULT_GRADIENT = ("#6366f1", "#8b5cf6")


def fallback_cover(category: str | None) -> dict[str, str]:
    """Gradient colors the frontend uses when a course has no thumbnail."""
    start, end = CATEGORY_GRADIENTS.get(category or "", DEFAULT_GRADIENT)
    return {"from": start, "to": end}


def generate_cover(
    db: Database,
    client: LLMClient,
    course_id: str,
    title: str,
    topic: str,
    model: str,
) -> str | None:
    """Generate a cover image and store its URL on the course.

    Returns:
        The image URL, or None when generation failed or returned nothing
    """
    prompt = get_prompt("courses/illustration", title=title, topic=topic)
    try:
        url = client.generate_image(prompt, model=model, size=COVER_SIZE)
    except LLMError as exc:
        logger.warning("illustration_failed", course_id=course_id, error=str(exc))
        return None

    if not url:
        logger.warning("illustration_empty", course_id=course_id)
        return None

    courses_repository.set_thumbnail(db, course_id, url)
    logger.info("illustration_stored", course_id=course_id)
    return url
