"""Experience points and levels.

Levels follow a square-root curve:

    level = floor(sqrt(total_xp / 100)) + 1
    xp_for_level(level) = (level - 1)^2 * 100

so level 2 starts at 100 XP, level 3 at 400, level 4 at 900.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class XPAction:
    """An action that grants a fixed amount of XP."""

    type: str
    amount: int
    description_en: str
    description_es: str

    def description(self, locale: str = "en") -> str:
        return self.description_es if locale == "es" else self.description_en


XP_ACTIONS: dict[str, XPAction] = {
    action.type: action
    for action in (
        # Courses
        XPAction("course_create", 100, "Created a course", "Curso creado"),
        XPAction("course_enroll", 10, "Enrolled in a course", "Inscrito en un curso"),
        XPAction("module_complete", 50, "Completed a module", "Módulo completado"),
        XPAction("course_complete", 200, "Completed a course", "Curso completado"),
        XPAction("perfect_score", 100, "Perfect score on quiz", "Puntuación perfecta en quiz"),
        XPAction("review_posted", 15, "Reviewed a course", "Reseña publicada"),
        # Reading
        XPAction("article_read", 5, "Read an article", "Artículo leído"),
        XPAction("article_bookmark", 2, "Bookmarked an article", "Artículo guardado"),
        XPAction("article_share", 3, "Shared an article", "Artículo compartido"),
        # Engagement
        XPAction("daily_login", 10, "Daily login", "Inicio de sesión diario"),
        XPAction("week_streak", 50, "7-day streak", "Racha de 7 días"),
        XPAction("profile_complete", 20, "Completed profile", "Perfil completado"),
    )
}

# Level thresholds for display tiers, highest first
LEVEL_TIERS: tuple[tuple[int, str], ...] = (
    (40, "diamond"),
    (30, "platinum"),
    (20, "gold"),
    (10, "silver"),
    (1, "bronze"),
)


def calculate_level(total_xp: int | float) -> int:
    """Level for a total XP amount; negative input counts as zero."""
    xp = max(total_xp, 0)
    # isqrt on the integer part avoids float error at exact squares
    return math.isqrt(int(xp) // 100) + 1


def xp_for_level(level: int) -> int:
    """Minimum total XP needed to be at `level`.

    Raises:
        ValueError: If level < 1
    """
    if level < 1:
        raise ValueError(f"Level must be >= 1, got {level}")
    return (level - 1) ** 2 * 100


def xp_to_next_level(current_xp: int) -> int:
    """XP still needed to reach the next level."""
    level = calculate_level(current_xp)
    return xp_for_level(level + 1) - max(current_xp, 0)


def level_progress(current_xp: int) -> int:
    """Percent (0..100) of the way through the current level."""
    xp = max(current_xp, 0)
    level = calculate_level(xp)
    floor_xp = xp_for_level(level)
    span = xp_for_level(level + 1) - floor_xp
    return round((xp - floor_xp) / span * 100)


def level_tier(level: int) -> str:
    """Display tier for a level: bronze, silver, gold, platinum or diamond."""
    for minimum, tier in LEVEL_TIERS:
        if level >= minimum:
            return tier
    return "bronze"


def get_action(action_type: str) -> XPAction | None:
    return XP_ACTIONS.get(action_type)
