"""Course catalog, progress and rating endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query

from thotnet.core import enrollment, illustrations, recommender, reviews
from thotnet.core.course_normalizer import normalize_course, normalize_difficulty
from thotnet.db import courses_repository
from thotnet.db.database import Database
from thotnet.errors import NotFound
from thotnet.events.bus import EventBus
from thotnet.web.auth import current_user, optional_user
from thotnet.web.dependencies import get_bus, get_db
from thotnet.web.schemas import Envelope, Locale, PagedEnvelope, Pagination, ProgressUpdate, RatingCreate
from thotnet.web.serializers import badge_dict

router = APIRouter(prefix="/api/courses", tags=["courses"])


# =============================================================================
# CATALOG
# =============================================================================


@router.get("", response_model=PagedEnvelope[list[dict[str, Any]]])
def list_courses(
    locale: Locale = "en",
    difficulty: str | None = None,
    category: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
) -> PagedEnvelope[list[dict[str, Any]]]:
    """List published courses, newest first."""
    courses, total = courses_repository.list_courses(
        db,
        difficulty=normalize_difficulty(difficulty) if difficulty else None,
        category=category,
        limit=limit,
        offset=offset,
    )
    return PagedEnvelope(
        data=[normalize_course(course, locale=locale) for course in courses],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )


@router.get("/{course_id}", response_model=Envelope[dict[str, Any]])
def get_course(
    course_id: str,
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    """Course with its ordered modules; counts as a view."""
    course = courses_repository.get_course(db, course_id)
    if course is None:
        raise NotFound(f"Course not found: {course_id}")

    courses_repository.increment_view_count(db, course_id)
    if user_id is not None:
        recommender.track_interaction(db, user_id, "course", course_id, "view")

    data = normalize_course(course, courses_repository.list_modules(db, course_id), locale)
    data["view_count"] = course.view_count + 1
    if not course.thumbnail_url:
        data["cover_gradient"] = illustrations.fallback_cover(course.category)
    return Envelope(data=data)


# =============================================================================
# PROGRESS
# =============================================================================


@router.get("/{course_id}/progress", response_model=Envelope[dict[str, Any]])
def get_progress(
    course_id: str,
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    summary = enrollment.get_course_progress(db, user_id, course_id)
    return Envelope(
        data={
            "progress": [asdict(row) for row in summary.progress],
            "stats": {
                "total_modules": summary.total_modules,
                "completed_modules": summary.completed_modules,
                "progress_percentage": summary.percentage,
                "last_accessed": summary.last_accessed_at,
                "time_spent": summary.time_spent,
                "average_score": summary.average_score,
            },
        }
    )


@router.post("/{course_id}/progress", response_model=Envelope[dict[str, Any]])
def update_progress(
    course_id: str,
    body: ProgressUpdate,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Record module progress; XP and badges are applied on the way."""
    result = enrollment.record_progress(
        db,
        bus,
        user_id,
        course_id,
        body.module_id,
        completed=body.completed,
        score=body.score,
        time_spent=body.time_spent,
    )
    return Envelope(
        data={
            "progress": asdict(result.progress),
            "progress_percentage": result.progress_percentage,
            "course_completed": result.course_completed,
            "xp_awarded": result.total_xp_awarded,
            "badges": [badge_dict(badge) for badge in result.badges],
        }
    )


# =============================================================================
# RATINGS
# =============================================================================


@router.get("/{course_id}/ratings", response_model=Envelope[dict[str, Any]])
def list_ratings(course_id: str, db: Database = Depends(get_db)) -> Envelope[dict[str, Any]]:
    ratings, stats = reviews.list_course_ratings(db, course_id)
    return Envelope(data={"ratings": [asdict(r) for r in ratings], "stats": stats.to_dict()})


@router.post("/{course_id}/ratings", response_model=Envelope[dict[str, Any]])
def rate_course(
    course_id: str,
    body: RatingCreate,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Create or update the caller's rating."""
    result = reviews.rate_course(db, bus, user_id, course_id, body.rating, body.review, body.locale)
    return Envelope(
        data={
            "rating": asdict(result.rating),
            "created": result.created,
            "xp_awarded": result.xp.amount if result.xp else 0,
            "badges": [badge_dict(badge, body.locale) for badge in result.badges],
        }
    )


@router.delete("/{course_id}/ratings", response_model=Envelope[dict[str, Any]])
def delete_rating(
    course_id: str,
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    reviews.delete_course_rating(db, user_id, course_id)
    return Envelope(data={"course_id": course_id, "deleted": True})
