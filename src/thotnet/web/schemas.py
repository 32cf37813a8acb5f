"""Pydantic schemas for the Web API.

Request bodies accept camelCase (as sent by the web client) or snake_case.
Every response is wrapped in an envelope: {"success": true, "data": ...}
or {"success": false, "error": ..., "details": [...]}.
"""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

Locale = Literal["en", "es"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
Duration = Literal["short", "medium", "long"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ENVELOPES
# =============================================================================


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class Pagination(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class PagedEnvelope(Envelope[T], Generic[T]):
    pagination: Pagination


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    details: list[dict[str, Any]] | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str


# =============================================================================
# COURSES
# =============================================================================


class EnrollRequest(CamelModel):
    course_id: str = Field(..., min_length=1)


class ProgressUpdate(CamelModel):
    module_id: str = Field(..., min_length=1)
    completed: bool | None = None
    score: int | None = Field(default=None, ge=0, le=100)
    time_spent: int = Field(default=0, ge=0)


class RatingCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    review: str | None = Field(default=None, max_length=2000)
    locale: Locale = "en"


class SimpleGenerateRequest(CamelModel):
    topic: str = Field(..., min_length=1, max_length=200)
    difficulty: Difficulty = "beginner"
    duration: Duration = "medium"
    locale: Locale = "en"


class AdvancedGenerateRequest(CamelModel):
    topic: str = Field(..., min_length=3, max_length=200)
    difficulty: Difficulty
    duration: Duration
    locale: Locale


# =============================================================================
# KNOWLEDGE GRAPH
# =============================================================================


class EntityCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=5000)
    aliases: list[str] = Field(default_factory=list)


class RelationCreate(CamelModel):
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
    rel_type: str = Field(..., min_length=1, max_length=100)
    weight: float = Field(default=1.0, ge=0, le=100)


# =============================================================================
# NEWS, SEARCH AND PERSONALIZATION
# =============================================================================


class BookmarkRequest(CamelModel):
    article_id: str = Field(..., min_length=1)


class InteractionCreate(CamelModel):
    content_type: Literal["article", "course"]
    content_id: str = Field(..., min_length=1)
    interaction_type: Literal["view", "search", "like", "bookmark", "complete"]


# =============================================================================
# PROFILE AND GAMIFICATION
# =============================================================================


class ProfileUpdate(CamelModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    avatar_url: str | None = Field(default=None, max_length=500)
    locale: Locale | None = None


class AwardXPRequest(CamelModel):
    action: str = Field(..., min_length=1)
    reference_id: str | None = None


class BadgeCheckRequest(CamelModel):
    trigger_type: str | None = None


# =============================================================================
# ANALYTICS
# =============================================================================


class AnalyticsEventCreate(CamelModel):
    event: str = Field(..., min_length=1, max_length=100)
    properties: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = Field(default=None, max_length=100)
