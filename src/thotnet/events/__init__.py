"""Typed in-process events."""

from thotnet.events.bus import EventBus
from thotnet.events.types import (
    ALL_EVENT_TYPES,
    BadgeUnlocked,
    CourseCompleted,
    CourseEnrolled,
    CourseGenerated,
    LevelUp,
    XPAwarded,
)

__all__ = [
    "ALL_EVENT_TYPES",
    "BadgeUnlocked",
    "CourseCompleted",
    "CourseEnrolled",
    "CourseGenerated",
    "EventBus",
    "LevelUp",
    "XPAwarded",
]
