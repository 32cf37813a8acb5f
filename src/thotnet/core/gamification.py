"""XP awards, streaks and per-user gamification stats."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone

import structlog

from thotnet.core import xp_system
from thotnet.db import badges_repository, profiles_repository
from thotnet.db.database import Database
from thotnet.errors import NotFound, ValidationFailed
from thotnet.events.bus import EventBus
from thotnet.events.types import LevelUp, XPAwarded

logger = structlog.get_logger(__name__)

WEEK = 7


@dataclass
class XPAwardResult:
    """Outcome of a single XP award."""

    user_id: str
    action_type: str
    amount: int
    total_xp: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


@dataclass
class StreakResult:
    streak_days: int
    longest_streak: int
    changed: bool
    week_bonus: XPAwardResult | None = None


@dataclass
class GamificationStats:
    """Everything the dashboard shows about a user's progress."""

    user_id: str
    total_xp: int
    level: int
    tier: str
    level_progress: int
    xp_to_next_level: int
    streak_days: int
    longest_streak: int
    badges: list[badges_repository.EarnedBadge] = field(default_factory=list)
    recent_transactions: list[profiles_repository.XPLogEntry] = field(default_factory=list)


def award_xp(
    db: Database,
    bus: EventBus,
    user_id: str,
    action_type: str,
    reference_id: str | None = None,
    amount: int | None = None,
) -> XPAwardResult:
    """Grant XP for an action and update the user's level.

    Args:
        db: Database handle
        bus: Event bus for XPAwarded / LevelUp
        user_id: Profile receiving XP
        action_type: Key in XP_ACTIONS, or any label when amount is given
        reference_id: Optional ID of the entity the action concerns
        amount: Explicit XP amount overriding the catalogue

    Raises:
        ValidationFailed: Unknown action without an explicit amount, or a
            non-positive amount
        NotFound: Profile doesn't exist
    """
    if amount is None:
        action = xp_system.get_action(action_type)
        if action is None:
            raise ValidationFailed(f"Unknown XP action: {action_type}")
        amount = action.amount

    if amount <= 0:
        raise ValidationFailed("XP amount must be positive")

    try:
        old_level, total_xp, new_level = profiles_repository.record_xp(
            db, user_id, amount, action_type, reference_id, xp_system.calculate_level
        )
    except LookupError as exc:
        raise NotFound(f"Profile not found: {user_id}") from exc

    result = XPAwardResult(
        user_id=user_id,
        action_type=action_type,
        amount=amount,
        total_xp=total_xp,
        old_level=old_level,
        new_level=new_level,
    )

    logger.info("xp_awarded", user_id=user_id, action_type=action_type, amount=amount, total_xp=total_xp)
    bus.publish(
        XPAwarded(
            user_id=user_id,
            action_type=action_type,
            amount=amount,
            total_xp=total_xp,
            reference_id=reference_id,
        )
    )

    if result.leveled_up:
        logger.info("level_up", user_id=user_id, old_level=old_level, new_level=new_level)
        bus.publish(LevelUp(user_id=user_id, old_level=old_level, new_level=new_level))

    return result


def award_xp_once(
    db: Database,
    bus: EventBus,
    user_id: str,
    action_type: str,
    reference_id: str | None = None,
) -> XPAwardResult | None:
    """Award XP unless the same action/reference was already rewarded."""
    if profiles_repository.has_xp_action(db, user_id, action_type, reference_id):
        return None
    return award_xp(db, bus, user_id, action_type, reference_id)


def update_streak(
    db: Database,
    bus: EventBus,
    user_id: str,
    today: date | None = None,
) -> StreakResult:
    """Advance the consecutive-day streak for today's activity.

    Same day is a no-op, the next day extends the streak, any gap resets it
    to 1. Every multiple of seven days grants week_streak XP.

    Raises:
        NotFound: Profile doesn't exist
    """
    profile = profiles_repository.get_profile(db, user_id)
    if profile is None:
        raise NotFound(f"Profile not found: {user_id}")

    today = today or datetime.now(timezone.utc).date()
    last = date.fromisoformat(profile.streak_updated_on) if profile.streak_updated_on else None

    if last == today:
        return StreakResult(profile.streak_days, profile.longest_streak, changed=False)

    if last is not None and (today - last).days == 1:
        streak = profile.streak_days + 1
    else:
        streak = 1

    longest = max(profile.longest_streak, streak)
    profiles_repository.set_streak(db, user_id, streak, longest, today.isoformat())

    logger.info("streak_updated", user_id=user_id, streak_days=streak)

    bonus = None
    if streak % WEEK == 0:
        bonus = award_xp(db, bus, user_id, "week_streak", reference_id=f"streak:{today.isoformat()}")

    return StreakResult(streak, longest, changed=True, week_bonus=bonus)


def get_stats(db: Database, user_id: str, recent: int = 10) -> GamificationStats:
    """Aggregate XP, level, streak and badge data for one user.

    Raises:
        NotFound: Profile doesn't exist
    """
    profile = profiles_repository.get_profile(db, user_id)
    if profile is None:
        raise NotFound(f"Profile not found: {user_id}")

    level = xp_system.calculate_level(profile.total_xp)
    return GamificationStats(
        user_id=user_id,
        total_xp=profile.total_xp,
        level=level,
        tier=xp_system.level_tier(level),
        level_progress=xp_system.level_progress(profile.total_xp),
        xp_to_next_level=xp_system.xp_to_next_level(profile.total_xp),
        streak_days=profile.streak_days,
        longest_streak=profile.longest_streak,
        badges=badges_repository.list_user_badges(db, user_id),
        recent_transactions=profiles_repository.list_xp_log(db, user_id, limit=recent),
    )


def recalculate_levels(db: Database) -> int:
    """Recompute every profile's level from its total XP.

    Returns:
        Number of profiles whose level changed
    """
    changed = 0
    for profile in profiles_repository.list_profiles(db):
        level = xp_system.calculate_level(profile.total_xp)
        if level != profile.level:
            profiles_repository.set_level(db, profile.id, level)
            changed += 1

    logger.info("levels_recalculated", changed=changed)
    return changed
