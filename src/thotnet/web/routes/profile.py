"""Endpoints for the signed-in user's profile and courses."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

import structlog
from fastapi import APIRouter, Depends

from thotnet.core import gamification
from thotnet.db import enrollments_repository, profiles_repository
from thotnet.db.database import Database
from thotnet.errors import NotFound
from thotnet.events.bus import EventBus
from thotnet.utils.text_utils import localized
from thotnet.web.auth import current_user
from thotnet.web.dependencies import get_bus, get_db
from thotnet.web.schemas import Envelope, Locale, ProfileUpdate
from thotnet.web.serializers import profile_dict, xp_award_dict

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/profile", response_model=Envelope[dict[str, Any]])
def get_profile(
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    profile = profiles_repository.get_profile(db, user_id)
    if profile is None:
        raise NotFound(f"Profile not found: {user_id}")
    return Envelope(data=profile_dict(profile))


@router.patch("/profile", response_model=Envelope[dict[str, Any]])
def update_profile(
    body: ProfileUpdate,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Update display name, avatar or locale.

    The first time the profile becomes complete it earns profile_complete XP.
    """
    profile = profiles_repository.update_profile(
        db,
        user_id,
        display_name=body.display_name,
        avatar_url=body.avatar_url,
        locale=body.locale,
    )
    if profile is None:
        raise NotFound(f"Profile not found: {user_id}")

    award = None
    if profile.is_complete:
        award = gamification.award_xp_once(db, bus, user_id, "profile_complete", reference_id=user_id)
        if award is not None:
            profile = profiles_repository.get_profile(db, user_id) or profile

    logger.info("profile_updated", user_id=user_id, complete=profile.is_complete)
    return Envelope(data={"profile": profile_dict(profile), "xp": xp_award_dict(award)})


@router.get("/courses", response_model=Envelope[list[dict[str, Any]]])
def list_user_courses(
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[list[dict[str, Any]]]:
    """Enrolled and created courses with progress, most recent first."""
    items = []
    for record, row in enrollments_repository.list_user_courses(db, user_id):
        item = asdict(record)
        item["course"] = {
            "id": record.course_id,
            "title": localized(row["title_en"], row["title_es"], locale),
            "description": localized(row["description_en"], row["description_es"], locale),
            "difficulty": row["difficulty"],
            "duration_minutes": row["duration_minutes"],
            "category": row["category"],
            "thumbnail_url": row["thumbnail_url"],
            "total_modules": row["total_modules"],
        }
        items.append(item)
    return Envelope(data=items)
