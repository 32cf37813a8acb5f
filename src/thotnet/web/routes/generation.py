"""AI course generation endpoints.

Both pipelines persist the course before returning. The cover illustration
is scheduled as a background task after the response and never affects it.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, status

from thotnet.core import course_generator, illustrations
from thotnet.core.course_generator import GeneratedCourse, GenerationRequest
from thotnet.web.auth import optional_user
from thotnet.web.dependencies import get_services
from thotnet.web.schemas import AdvancedGenerateRequest, Envelope, SimpleGenerateRequest
from thotnet.web.services import Services

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["generation"])


def _schedule_cover(
    background_tasks: BackgroundTasks,
    services: Services,
    course: GeneratedCourse,
    topic: str,
) -> None:
    settings = services.config.generation
    if not settings.illustrations_enabled:
        return

    client = services.llm.get_client("openai")
    if client is None:
        logger.info("illustration_skipped", course_id=course.course_id, reason="no_image_provider")
        return

    background_tasks.add_task(
        illustrations.generate_cover,
        services.db,
        client,
        course.course_id,
        course.title,
        topic,
        settings.image_model,
    )


@router.post("/api/generate-course-simple", response_model=Envelope[dict[str, Any]])
def generate_simple(
    body: SimpleGenerateRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    """Generate a course with one LLM call."""
    request = GenerationRequest(
        topic=body.topic.strip(),
        difficulty=body.difficulty,
        duration=body.duration,
        locale=body.locale,
    )
    course = course_generator.generate_simple_course(
        services.db,
        services.bus,
        services.llm,
        request,
        user_id=user_id,
        timeout_seconds=services.config.generation.timeout_seconds,
    )
    _schedule_cover(background_tasks, services, course, request.topic)
    return Envelope(
        data={
            "course_id": course.course_id,
            "title": course.title,
            "description": course.description,
            "modules_count": course.modules_count,
            "content": course.content,
        }
    )


@router.post(
    "/api/courses/generate-advanced",
    response_model=Envelope[dict[str, Any]],
    status_code=status.HTTP_201_CREATED,
)
def generate_advanced(
    body: AdvancedGenerateRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    """Generate a course from an outline plus one content call per module."""
    request = GenerationRequest(
        topic=body.topic.strip(),
        difficulty=body.difficulty,
        duration=body.duration,
        locale=body.locale,
    )
    course = course_generator.generate_advanced_course(
        services.db,
        services.bus,
        services.llm,
        request,
        user_id=user_id,
        timeout_seconds=services.config.generation.timeout_seconds,
    )
    _schedule_cover(background_tasks, services, course, request.topic)
    return Envelope(
        data={
            "course_id": course.course_id,
            "title": course.title,
            "modules": course.modules_count,
            "total_characters": course.total_characters,
        }
    )
