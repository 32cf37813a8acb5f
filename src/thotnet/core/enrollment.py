"""Course enrollment and module progress.

Recording progress drives most of the gamification: module completions,
course completion and perfect scores each award XP, then badge checks run
for whatever moved.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

import structlog

from thotnet.core import badge_awards, course_progress, gamification, recommender
from thotnet.core.gamification import XPAwardResult
from thotnet.db import courses_repository, enrollments_repository, progress_repository
from thotnet.db.badges_repository import BadgeRecord
from thotnet.db.courses_repository import CourseRecord
from thotnet.db.database import Database, utc_now
from thotnet.db.enrollments_repository import EnrollmentRecord
from thotnet.db.progress_repository import ProgressRecord
from thotnet.errors import Conflict, NotFound
from thotnet.events.bus import EventBus
from thotnet.events.types import CourseCompleted, CourseEnrolled

logger = structlog.get_logger(__name__)

PERFECT_SCORE = 100


@dataclass
class ProgressUpdateResult:
    """Outcome of recording progress on one module."""

    progress: ProgressRecord
    progress_percentage: int
    course_completed: bool
    xp_awarded: list[XPAwardResult] = field(default_factory=list)
    badges: list[BadgeRecord] = field(default_factory=list)

    @property
    def total_xp_awarded(self) -> int:
        return sum(award.amount for award in self.xp_awarded)


@dataclass
class CourseProgressSummary:
    progress: list[ProgressRecord]
    total_modules: int
    completed_modules: int
    percentage: int
    last_accessed_at: str | None
    time_spent: int
    average_score: int


def _require_course(db: Database, course_id: str) -> CourseRecord:
    course = courses_repository.get_course(db, course_id)
    if course is None:
        raise NotFound(f"Course not found: {course_id}")
    return course


def enroll(db: Database, bus: EventBus, user_id: str, course_id: str) -> EnrollmentRecord:
    """Enroll a user, award course_enroll XP and publish CourseEnrolled.

    Raises:
        NotFound: Unknown course
        Conflict: Already enrolled
    """
    _require_course(db, course_id)
    if enrollments_repository.get_enrollment(db, user_id, course_id) is not None:
        raise Conflict("Already enrolled in this course")

    try:
        enrollment = enrollments_repository.enroll(db, user_id, course_id)
    except sqlite3.IntegrityError as exc:
        raise Conflict("Already enrolled in this course") from exc

    logger.info("course_enrolled", user_id=user_id, course_id=course_id)
    gamification.award_xp(db, bus, user_id, "course_enroll", reference_id=course_id)
    recommender.track_interaction(db, user_id, "course", course_id, "like")
    bus.publish(CourseEnrolled(user_id=user_id, course_id=course_id))
    return enrollment


def unenroll(db: Database, user_id: str, course_id: str) -> None:
    """Raises NotFound when the user isn't enrolled."""
    if not enrollments_repository.unenroll(db, user_id, course_id):
        raise NotFound("Enrollment not found")
    logger.info("course_unenrolled", user_id=user_id, course_id=course_id)


def get_course_progress(db: Database, user_id: str, course_id: str) -> CourseProgressSummary:
    """Per-module rows plus totals for one course.

    Raises:
        NotFound: Unknown course
    """
    _require_course(db, course_id)
    modules = courses_repository.list_modules(db, course_id)
    progress = progress_repository.list_progress(db, user_id, course_id)
    enrollment = enrollments_repository.get_enrollment(db, user_id, course_id)

    module_ids = {m.id for m in modules}
    completed = sum(1 for p in progress if p.completed and p.module_id in module_ids)
    last_accessed = max((p.updated_at for p in progress), default=None)
    if enrollment is not None and enrollment.last_accessed_at:
        last_accessed = max(filter(None, (last_accessed, enrollment.last_accessed_at)))

    return CourseProgressSummary(
        progress=progress,
        total_modules=len(modules),
        completed_modules=completed,
        percentage=course_progress.calculate_course_progress(modules, progress),
        last_accessed_at=last_accessed,
        time_spent=course_progress.total_time_spent(progress),
        average_score=course_progress.average_quiz_score(progress),
    )


def record_progress(
    db: Database,
    bus: EventBus,
    user_id: str,
    course_id: str,
    module_id: str,
    completed: bool | None = None,
    score: int | None = None,
    time_spent: int = 0,
) -> ProgressUpdateResult:
    """Upsert module progress and apply its rewards.

    - first completion of a module: module_complete XP
    - course reaching 100%: course_complete XP, completed_at, CourseCompleted
    - score of 100: perfect_score XP (once per module)

    Raises:
        NotFound: Unknown course or module
    """
    _require_course(db, course_id)
    if courses_repository.get_module(db, course_id, module_id) is None:
        raise NotFound(f"Module not found: {module_id}")

    record, newly_completed = progress_repository.upsert_progress(
        db, user_id, course_id, module_id, completed=completed, score=score, time_spent=time_spent
    )

    modules = courses_repository.list_modules(db, course_id)
    progress = progress_repository.list_progress(db, user_id, course_id)
    percentage = course_progress.calculate_course_progress(modules, progress)

    enrollment = enrollments_repository.get_enrollment(db, user_id, course_id)
    course_completed = newly_completed and course_progress.is_course_complete(modules, progress)
    first_course_completion = course_completed and (enrollment is None or enrollment.completed_at is None)

    if enrollment is not None:
        enrollments_repository.set_progress(
            db, user_id, course_id, percentage, completed_at=utc_now() if course_completed else None
        )

    awards: list[XPAwardResult] = []
    triggers: list[str] = []

    if newly_completed:
        awards.append(gamification.award_xp(db, bus, user_id, "module_complete", reference_id=module_id))
        triggers.append("module_complete")

    if score == PERFECT_SCORE:
        perfect = gamification.award_xp_once(db, bus, user_id, "perfect_score", reference_id=module_id)
        if perfect is not None:
            awards.append(perfect)
            triggers.append("perfect_score")

    if first_course_completion:
        awards.append(gamification.award_xp(db, bus, user_id, "course_complete", reference_id=course_id))
        triggers.append("course_complete")
        recommender.track_interaction(db, user_id, "course", course_id, "complete")
        logger.info("course_completed", user_id=user_id, course_id=course_id)
        bus.publish(CourseCompleted(user_id=user_id, course_id=course_id))

    badges: list[BadgeRecord] = []
    for trigger in triggers:
        badges.extend(badge_awards.check_and_award_badges(db, bus, user_id, trigger))

    return ProgressUpdateResult(
        progress=record,
        progress_percentage=percentage,
        course_completed=course_completed,
        xp_awarded=awards,
        badges=badges,
    )
