"""XP, streak and badge endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends

from thotnet.core import badge_awards, gamification
from thotnet.db import badges_repository
from thotnet.db.database import Database
from thotnet.events.bus import EventBus
from thotnet.web.auth import current_user, optional_user
from thotnet.web.dependencies import get_bus, get_db
from thotnet.web.schemas import AwardXPRequest, BadgeCheckRequest, Envelope, Locale
from thotnet.web.serializers import badge_dict, xp_award_dict

router = APIRouter(tags=["gamification"])


# =============================================================================
# XP AND STREAKS
# =============================================================================


@router.get("/api/gamification/stats", response_model=Envelope[dict[str, Any]])
def get_stats(
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    stats = gamification.get_stats(db, user_id)
    data = asdict(stats)
    data["badges"] = [
        {**badge_dict(earned.badge, locale), "earned_at": earned.earned_at} for earned in stats.badges
    ]
    return Envelope(data=data)


@router.post("/api/gamification/award-xp", response_model=Envelope[dict[str, Any]])
def award_xp(
    body: AwardXPRequest,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Award catalogue XP for a client-side action (e.g. article_share)."""
    award = gamification.award_xp(db, bus, user_id, body.action, reference_id=body.reference_id)
    badges = badge_awards.check_and_award_badges(db, bus, user_id, "xp_threshold")
    return Envelope(data={"xp": xp_award_dict(award), "badges": [badge_dict(b) for b in badges]})


@router.post("/api/gamification/streak", response_model=Envelope[dict[str, Any]])
def update_streak(
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    result = gamification.update_streak(db, bus, user_id)
    badges = badge_awards.check_and_award_badges(db, bus, user_id, "streak_days") if result.changed else []
    return Envelope(
        data={
            "streak_days": result.streak_days,
            "longest_streak": result.longest_streak,
            "changed": result.changed,
            "week_bonus": xp_award_dict(result.week_bonus),
            "badges": [badge_dict(b) for b in badges],
        }
    )


# =============================================================================
# BADGES
# =============================================================================


@router.get("/api/badges", response_model=Envelope[list[dict[str, Any]]])
def list_badges(
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str | None = Depends(optional_user),
) -> Envelope[list[dict[str, Any]]]:
    """Badge catalogue; signed-in callers see which ones they've earned."""
    earned = badges_repository.earned_badge_ids(db, user_id) if user_id else set()
    return Envelope(
        data=[
            {**badge_dict(badge, locale), "earned": badge.id in earned}
            for badge in badges_repository.list_badges(db)
        ]
    )


@router.post("/api/badges/check", response_model=Envelope[dict[str, Any]])
def check_badges(
    body: BadgeCheckRequest,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    awarded = badge_awards.check_and_award_badges(db, bus, user_id, body.trigger_type)
    return Envelope(data={"awarded": [badge_dict(b) for b in awarded], "count": len(awarded)})
