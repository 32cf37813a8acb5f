"""Automatic badge awarding.

Call check_and_award_badges after any action that can move a badge
counter. It is idempotent: user_badges is unique per (user, badge), so a
badge is awarded and its XP granted at most once.
"""

from __future__ import annotations

import structlog

from thotnet.core import achievements, gamification
from thotnet.core.achievements import UserStats
from thotnet.db import (
    articles_repository,
    badges_repository,
    enrollments_repository,
    profiles_repository,
    progress_repository,
    reviews_repository,
)
from thotnet.db.badges_repository import BadgeRecord
from thotnet.db.database import Database
from thotnet.errors import NotFound, ValidationFailed
from thotnet.events.bus import EventBus
from thotnet.events.types import BadgeUnlocked

logger = structlog.get_logger(__name__)

# XP rewards can push a user over an XP or level badge, which can grant more
# XP; bound the follow-up passes.
MAX_PASSES = 5
ALWAYS_CHECKED = ("xp_threshold", "level")


def seed_badges(db: Database) -> int:
    """Write the built-in catalogue into the badges table."""
    return badges_repository.upsert_badges(db, achievements.ACHIEVEMENTS)


def collect_user_stats(db: Database, user_id: str) -> UserStats:
    """Aggregate every badge counter for a user from the database.

    Raises:
        NotFound: Profile doesn't exist
    """
    profile = profiles_repository.get_profile(db, user_id)
    if profile is None:
        raise NotFound(f"Profile not found: {user_id}")

    return UserStats(
        courses_created=enrollments_repository.count_relationships(db, user_id, enrollments_repository.CREATED),
        courses_completed=enrollments_repository.count_relationships(
            db, user_id, enrollments_repository.ENROLLED, completed_only=True
        ),
        courses_enrolled=enrollments_repository.count_relationships(db, user_id, enrollments_repository.ENROLLED),
        modules_completed=progress_repository.count_completed_modules(db, user_id),
        articles_read=profiles_repository.count_xp_actions(db, user_id, "article_read"),
        perfect_scores=progress_repository.count_perfect_scores(db, user_id),
        current_streak=profile.streak_days,
        ratings_given=reviews_repository.count_user_ratings(db, user_id),
        bookmarks=articles_repository.count_bookmarks(db, user_id),
        total_xp=profile.total_xp,
        level=profile.level,
    )


def check_and_award_badges(
    db: Database,
    bus: EventBus,
    user_id: str,
    trigger_type: str | None = None,
) -> list[BadgeRecord]:
    """Award every badge the user now qualifies for.

    Args:
        db: Database handle
        bus: Event bus for BadgeUnlocked (and XP events from rewards)
        user_id: Profile to check
        trigger_type: Restrict the check to one trigger type (XP and level
            badges are always included)

    Returns:
        Newly awarded badges, in award order

    Raises:
        ValidationFailed: Unknown trigger type
        NotFound: Profile doesn't exist
    """
    if trigger_type is not None and trigger_type not in achievements.TRIGGER_TYPES:
        raise ValidationFailed(f"Unknown trigger type: {trigger_type}")

    catalogue = badges_repository.list_badges(db)
    if trigger_type is not None:
        catalogue = [b for b in catalogue if b.trigger_type in (trigger_type, *ALWAYS_CHECKED)]

    awarded: list[BadgeRecord] = []
    for _ in range(MAX_PASSES):
        stats = collect_user_stats(db, user_id)
        earned = badges_repository.earned_badge_ids(db, user_id)
        candidates = achievements.check_unlocked(stats, earned, catalogue)
        if not candidates:
            break

        for badge in candidates:
            if not badges_repository.award_badge(db, user_id, badge.id):
                continue

            awarded.append(badge)
            logger.info("badge_unlocked", user_id=user_id, badge_id=badge.id)
            bus.publish(BadgeUnlocked(user_id=user_id, badge_id=badge.id, xp_reward=badge.xp_reward))

            if badge.xp_reward > 0:
                gamification.award_xp(
                    db,
                    bus,
                    user_id,
                    "badge_reward",
                    reference_id=badge.id,
                    amount=badge.xp_reward,
                )

    return awarded
