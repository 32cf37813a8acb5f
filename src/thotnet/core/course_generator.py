"""AI course generation.

Two pipelines share the same persistence and bookkeeping:

- simple: one JSON-mode call returns the whole course (title, objectives,
  modules with content, takeaways and quiz).
- advanced: an outline call, then one content call per module.

LLM output is validated with pydantic models before anything is written.
Both pipelines run against a single deadline (45 s by default); running
out of time raises GenerationTimeoutError, unusable output raises
CourseGenerationError.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from thotnet.core import badge_awards, gamification
from thotnet.core.course_categorizer import categorize_course
from thotnet.core.course_normalizer import estimate_duration, normalize_duration, normalize_resources
from thotnet.db import courses_repository, enrollments_repository
from thotnet.db.courses_repository import NewModule
from thotnet.db.database import Database
from thotnet.errors import UpstreamError, UpstreamTimeout
from thotnet.events.bus import EventBus
from thotnet.events.types import CourseGenerated
from thotnet.llm.client import LLMError, LLMTimeoutError
from thotnet.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

Difficulty = Literal["beginner", "intermediate", "advanced"]
Duration = Literal["short", "medium", "long"]
GenerationMode = Literal["simple", "advanced"]

DEFAULT_TIMEOUT_SECONDS = 45.0

MODULE_RANGES: dict[str, tuple[int, int]] = {
    "short": (2, 3),
    "medium": (4, 6),
    "long": (7, 10),
}

SIMPLE_MODULE_COUNTS = {"short": 3, "medium": 5, "long": 7}
SIMPLE_WORD_COUNTS = {"short": 300, "medium": 500, "long": 700}
COURSE_DURATION_MINUTES = {"short": 45, "medium": 120, "long": 210}

ADVANCED_WORD_COUNTS = {"beginner": 600, "intermediate": 800, "advanced": 1000}

LANGUAGE_NAMES = {"en": "English", "es": "Spanish"}

SIMPLE_MAX_TOKENS = 4000
MODULE_MAX_TOKENS = 3000


class CourseGenerationError(UpstreamError):
    """LLM output could not be turned into a course."""

    public_message = "Course generation failed"


class GenerationTimeoutError(UpstreamTimeout):
    """Generation ran past its deadline."""


def module_range(duration: str) -> tuple[int, int]:
    """(min, max) module count for a duration; unknown durations use medium."""
    return MODULE_RANGES.get(duration, MODULE_RANGES["medium"])


# =============================================================================
# LLM OUTPUT SCHEMAS
# =============================================================================


class _LLMModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuizQuestion(_LLMModel):
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: int | str = Field(0, alias="correctAnswer")
    explanation: str = ""


class GeneratedModule(_LLMModel):
    title: str = Field(min_length=1)
    description: str = ""
    content: str = Field(min_length=1)
    key_takeaways: list[str] = Field(default_factory=list, alias="keyTakeaways")
    estimated_minutes: float | None = Field(None, alias="estimatedMinutes")
    quiz: list[QuizQuestion] = Field(default_factory=list)
    resources: list[Any] = Field(default_factory=list)


class GeneratedCourseData(_LLMModel):
    title: str = Field(min_length=1)
    description: str
    objectives: list[str] = Field(default_factory=list)
    modules: list[GeneratedModule]


class OutlineModule(_LLMModel):
    title: str = Field(min_length=1)
    description: str = ""
    topics: list[str] = Field(default_factory=list)
    estimated_minutes: float | None = None


class CourseOutline(_LLMModel):
    title: str = Field(min_length=1)
    description: str
    modules: list[OutlineModule]


class ModuleContent(_LLMModel):
    content: str = Field(min_length=1)
    resources: list[Any] = Field(default_factory=list)


# =============================================================================
# DATA CLASSES
# =============================================================================


class JSONGenerator(Protocol):
    """Anything with the ProviderChain.simple_json signature."""

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]: ...


@dataclass
class GenerationRequest:
    topic: str
    difficulty: str = "beginner"
    duration: str = "medium"
    locale: str = "en"


@dataclass
class GeneratedCourse:
    """Outcome of a successful generation run."""

    course_id: str
    title: str
    description: str
    category: str
    mode: GenerationMode
    modules_count: int
    total_characters: int
    generation_time_ms: int
    content: dict[str, Any] = field(default_factory=dict)


class _Deadline:
    def __init__(self, seconds: float):
        self.seconds = seconds
        self._expires = time.monotonic() + seconds

    def remaining(self) -> float:
        left = self._expires - time.monotonic()
        if left <= 0:
            raise GenerationTimeoutError()
        return left


# =============================================================================
# HELPERS
# =============================================================================


def _call_llm(
    llm: JSONGenerator,
    deadline: _Deadline,
    system_prompt: str,
    user_message: str,
    max_tokens: int,
    step: str,
) -> dict[str, Any]:
    try:
        return llm.simple_json(system_prompt, user_message, max_tokens=max_tokens, timeout=deadline.remaining())
    except LLMTimeoutError as exc:
        logger.error("generation_timeout", step=step, error=str(exc))
        raise GenerationTimeoutError() from exc
    except LLMError as exc:
        logger.error("generation_llm_failed", step=step, error=str(exc))
        raise CourseGenerationError(f"Course generation failed at {step}: language model unavailable") from exc


def _validate(model: type[BaseModel], data: dict[str, Any], step: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.error("generation_invalid_output", step=step, errors=exc.error_count())
        details = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        raise CourseGenerationError(f"Invalid {step} returned by the language model", details=details) from exc


def _clamp_module_count(items: list[Any], duration: str, step: str) -> list[Any]:
    """Drop modules past the duration's maximum; too few is an error."""
    minimum, maximum = module_range(duration)
    if len(items) < minimum:
        raise CourseGenerationError(
            f"Generated {step} has {len(items)} modules, at least {minimum} required for a {duration} course"
        )
    if len(items) > maximum:
        logger.info("generation_modules_trimmed", step=step, received=len(items), kept=maximum)
    return items[:maximum]


def coerce_resources(resources: list[Any]) -> list[dict]:
    """Resources as {title, url, type} dicts; bare URL strings are accepted."""
    as_dicts = []
    for resource in resources:
        if isinstance(resource, str) and resource.strip().startswith(("http://", "https://")):
            url = resource.strip()
            as_dicts.append({"title": url, "url": url, "type": "link"})
        else:
            as_dicts.append(resource)
    return normalize_resources(as_dicts)


def _module_markdown(module: GeneratedModule, locale: str) -> str:
    if not module.key_takeaways:
        return module.content
    heading = "Puntos clave" if locale == "es" else "Key takeaways"
    bullets = "\n".join(f"- {point}" for point in module.key_takeaways)
    return f"{module.content.rstrip()}\n\n## {heading}\n\n{bullets}\n"


def _module_minutes(estimated: float | None, content: str) -> int:
    if estimated is None:
        return estimate_duration(content)
    return normalize_duration(estimated)


def _system_prompt(locale: str) -> str:
    return get_prompt("courses/system", language=LANGUAGE_NAMES.get(locale, "English"))


def _record_creation(
    db: Database,
    bus: EventBus,
    course_id: str,
    request: GenerationRequest,
    modules_count: int,
    mode: GenerationMode,
    user_id: str | None,
) -> None:
    if user_id is not None:
        enrollments_repository.add_created(db, user_id, course_id)
        gamification.award_xp(db, bus, user_id, "course_create", reference_id=course_id)
        badge_awards.check_and_award_badges(db, bus, user_id, "course_create")

    bus.publish(
        CourseGenerated(
            course_id=course_id,
            topic=request.topic,
            modules_count=modules_count,
            mode=mode,
            user_id=user_id,
        )
    )


# =============================================================================
# PIPELINES
# =============================================================================


def generate_simple_course(
    db: Database,
    bus: EventBus,
    llm: JSONGenerator,
    request: GenerationRequest,
    user_id: str | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> GeneratedCourse:
    """Generate and store a course with a single LLM call.

    Args:
        db: Database handle
        bus: Event bus (CourseGenerated, XP events for the creator)
        llm: Provider chain or client
        request: Topic, difficulty, duration and locale
        user_id: Creator, if authenticated
        timeout_seconds: Deadline for the whole run

    Raises:
        GenerationTimeoutError: Deadline exceeded
        CourseGenerationError: Providers failed or output unusable
    """
    started = time.monotonic()
    deadline = _Deadline(timeout_seconds)
    logger.info(
        "course_generation_started",
        mode="simple",
        topic=request.topic,
        difficulty=request.difficulty,
        duration=request.duration,
    )

    prompt = get_prompt(
        "courses/simple",
        topic=request.topic,
        difficulty=request.difficulty,
        module_count=SIMPLE_MODULE_COUNTS.get(request.duration, 5),
        word_count=SIMPLE_WORD_COUNTS.get(request.duration, 500),
    )
    raw = _call_llm(llm, deadline, _system_prompt(request.locale), prompt, SIMPLE_MAX_TOKENS, "course")
    course = _validate(GeneratedCourseData, raw, "course")
    modules = _clamp_module_count(course.modules, request.duration, "course")

    new_modules = []
    for module in modules:
        content = _module_markdown(module, request.locale)
        new_modules.append(
            NewModule(
                title=module.title,
                content=content,
                type="article",
                estimated_time=_module_minutes(module.estimated_minutes, module.content),
                resources=coerce_resources(module.resources),
            )
        )

    category = categorize_course(request.topic, course.description)
    course_id = courses_repository.insert_course(
        db,
        title=course.title,
        description=course.description,
        locale=request.locale,
        difficulty=request.difficulty,
        duration_minutes=COURSE_DURATION_MINUTES.get(request.duration, 120),
        topics=[request.topic],
        category=category,
        modules=new_modules,
        ai_generated=True,
        generation_prompt=request.topic,
        created_by=user_id,
    )
    _record_creation(db, bus, course_id, request, len(new_modules), "simple", user_id)

    content = course.model_dump(by_alias=True)
    content["modules"] = [m.model_dump(by_alias=True) for m in modules]

    generation_time_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "course_generated",
        mode="simple",
        course_id=course_id,
        modules=len(new_modules),
        generation_time_ms=generation_time_ms,
    )

    return GeneratedCourse(
        course_id=course_id,
        title=course.title,
        description=course.description,
        category=category,
        mode="simple",
        modules_count=len(new_modules),
        total_characters=sum(len(m.content) for m in new_modules),
        generation_time_ms=generation_time_ms,
        content=content,
    )


def generate_advanced_course(
    db: Database,
    bus: EventBus,
    llm: JSONGenerator,
    request: GenerationRequest,
    user_id: str | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> GeneratedCourse:
    """Generate and store a course in two steps: outline, then module content.

    Raises:
        GenerationTimeoutError: Deadline exceeded
        CourseGenerationError: Providers failed or output unusable
    """
    started = time.monotonic()
    deadline = _Deadline(timeout_seconds)
    minimum, maximum = module_range(request.duration)
    system_prompt = _system_prompt(request.locale)

    # Step 1: outline
    logger.info("course_generation_started", mode="advanced", topic=request.topic, step="outline")
    outline_prompt = get_prompt(
        "courses/outline",
        topic=request.topic,
        difficulty=request.difficulty,
        duration_minutes=COURSE_DURATION_MINUTES.get(request.duration, 120),
        min_modules=minimum,
        max_modules=maximum,
    )
    outline = _validate(
        CourseOutline,
        _call_llm(llm, deadline, system_prompt, outline_prompt, SIMPLE_MAX_TOKENS, "outline"),
        "outline",
    )
    outline_modules = _clamp_module_count(outline.modules, request.duration, "outline")

    # Step 2: content per module
    new_modules = []
    for index, planned in enumerate(outline_modules, start=1):
        logger.info("module_generation_started", module=index, total=len(outline_modules))
        module_prompt = get_prompt(
            "courses/module_content",
            course_title=outline.title,
            difficulty=request.difficulty,
            module_number=index,
            module_total=len(outline_modules),
            module_title=planned.title,
            module_description=planned.description,
            module_topics=", ".join(planned.topics) or planned.title,
            word_count=ADVANCED_WORD_COUNTS.get(request.difficulty, 800),
        )
        step = f"module {index}"
        module_content = _validate(
            ModuleContent,
            _call_llm(llm, deadline, system_prompt, module_prompt, MODULE_MAX_TOKENS, step),
            step,
        )
        new_modules.append(
            NewModule(
                title=planned.title,
                content=module_content.content,
                type="article",
                estimated_time=_module_minutes(planned.estimated_minutes, module_content.content),
                resources=coerce_resources(module_content.resources),
            )
        )

    # Step 3: persist
    topics = [request.topic]
    for planned in outline_modules:
        for topic in planned.topics:
            if topic and topic not in topics:
                topics.append(topic)

    category = categorize_course(request.topic, outline.description)
    course_id = courses_repository.insert_course(
        db,
        title=outline.title,
        description=outline.description,
        locale=request.locale,
        difficulty=request.difficulty,
        duration_minutes=sum(m.estimated_time for m in new_modules),
        topics=topics,
        category=category,
        modules=new_modules,
        ai_generated=True,
        generation_prompt=request.topic,
        created_by=user_id,
    )
    _record_creation(db, bus, course_id, request, len(new_modules), "advanced", user_id)

    total_characters = sum(len(m.content) for m in new_modules)
    generation_time_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "course_generated",
        mode="advanced",
        course_id=course_id,
        modules=len(new_modules),
        total_characters=total_characters,
        generation_time_ms=generation_time_ms,
    )

    return GeneratedCourse(
        course_id=course_id,
        title=outline.title,
        description=outline.description,
        category=category,
        mode="advanced",
        modules_count=len(new_modules),
        total_characters=total_characters,
        generation_time_ms=generation_time_ms,
        content=outline.model_dump(),
    )
