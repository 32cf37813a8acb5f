"""Course ratings and reviews."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from thotnet.core import badge_awards, gamification
from thotnet.core.gamification import XPAwardResult
from thotnet.db import courses_repository, reviews_repository
from thotnet.db.badges_repository import BadgeRecord
from thotnet.db.database import Database
from thotnet.db.reviews_repository import RatingRecord
from thotnet.errors import NotFound
from thotnet.events.bus import EventBus

logger = structlog.get_logger(__name__)


@dataclass
class RatingStats:
    average: float
    count: int
    distribution: dict[int, int]

    def to_dict(self) -> dict:
        return {
            "average": self.average,
            "count": self.count,
            "distribution": {str(stars): n for stars, n in self.distribution.items()},
        }


@dataclass
class RatingResult:
    rating: RatingRecord
    created: bool
    xp: XPAwardResult | None = None
    badges: list[BadgeRecord] = field(default_factory=list)


def rating_stats(ratings: list[RatingRecord]) -> RatingStats:
    """Average (one decimal), count and 1..5 distribution."""
    distribution = {stars: 0 for stars in range(1, 6)}
    for rating in ratings:
        distribution[rating.rating] = distribution.get(rating.rating, 0) + 1

    if not ratings:
        return RatingStats(average=0.0, count=0, distribution=distribution)

    average = round(sum(r.rating for r in ratings) / len(ratings), 1)
    return RatingStats(average=average, count=len(ratings), distribution=distribution)


def _require_course(db: Database, course_id: str) -> None:
    if courses_repository.get_course(db, course_id) is None:
        raise NotFound(f"Course not found: {course_id}")


def _refresh_average(db: Database, course_id: str) -> RatingStats:
    stats = rating_stats(reviews_repository.list_ratings(db, course_id))
    courses_repository.set_rating_avg(db, course_id, stats.average)
    return stats


def list_course_ratings(db: Database, course_id: str) -> tuple[list[RatingRecord], RatingStats]:
    """Raises NotFound for an unknown course."""
    _require_course(db, course_id)
    ratings = reviews_repository.list_ratings(db, course_id)
    return ratings, rating_stats(ratings)


def rate_course(
    db: Database,
    bus: EventBus,
    user_id: str,
    course_id: str,
    rating: int,
    review: str | None = None,
    locale: str = "en",
) -> RatingResult:
    """Create or update the caller's rating and refresh the course average.

    The first rating of a course earns review_posted XP and runs the
    rating badge checks.

    Raises:
        NotFound: Unknown course
    """
    _require_course(db, course_id)
    record, created = reviews_repository.upsert_rating(db, course_id, user_id, rating, review, locale)
    stats = _refresh_average(db, course_id)
    logger.info("course_rated", course_id=course_id, user_id=user_id, rating=rating, average=stats.average)

    result = RatingResult(rating=record, created=created)
    if created:
        result.xp = gamification.award_xp_once(db, bus, user_id, "review_posted", reference_id=course_id)
        result.badges = badge_awards.check_and_award_badges(db, bus, user_id, "rating_given")
    return result


def delete_course_rating(db: Database, user_id: str, course_id: str) -> None:
    """Raises NotFound when the caller hasn't rated the course."""
    if not reviews_repository.delete_rating(db, course_id, user_id):
        raise NotFound("Rating not found")
    _refresh_average(db, course_id)
    logger.info("course_rating_deleted", course_id=course_id, user_id=user_id)
