"""Event payloads published on the in-process bus.

Each payload is a frozen dataclass; handlers subscribe to the class itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from thotnet.db.database import utc_now


@dataclass(frozen=True)
class XPAwarded:
    user_id: str
    action_type: str
    amount: int
    total_xp: int
    reference_id: str | None = None
    occurred_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class LevelUp:
    user_id: str
    old_level: int
    new_level: int
    occurred_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class BadgeUnlocked:
    user_id: str
    badge_id: str
    xp_reward: int
    occurred_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class CourseEnrolled:
    user_id: str
    course_id: str
    occurred_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class CourseCompleted:
    user_id: str
    course_id: str
    occurred_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class CourseGenerated:
    course_id: str
    topic: str
    modules_count: int
    mode: str
    user_id: str | None = None
    occurred_at: str = field(default_factory=utc_now)


ALL_EVENT_TYPES: tuple[type, ...] = (
    XPAwarded,
    LevelUp,
    BadgeUnlocked,
    CourseEnrolled,
    CourseCompleted,
    CourseGenerated,
)
