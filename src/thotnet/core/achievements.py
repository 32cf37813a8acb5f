"""Achievement catalogue and unlock rules.

Every badge is unlocked by a single counter reaching a threshold. The
counter is selected by the badge's trigger type; UserStats carries all
counters for one user. Unlock checks here are pure; persistence lives in
thotnet.core.badge_awards.
"""

from __future__ import annotations

from dataclasses import dataclass

from thotnet.db.badges_repository import BadgeRecord

# trigger_type -> UserStats attribute it compares against
TRIGGER_STAT_FIELDS: dict[str, str] = {
    "xp_threshold": "total_xp",
    "level": "level",
    "streak_days": "current_streak",
    "article_read": "articles_read",
    "course_complete": "courses_completed",
    "course_create": "courses_created",
    "module_complete": "modules_completed",
    "rating_given": "ratings_given",
    "bookmark_count": "bookmarks",
    "perfect_score": "perfect_scores",
}

TRIGGER_TYPES = tuple(TRIGGER_STAT_FIELDS)


@dataclass
class UserStats:
    """Counters used to evaluate badge conditions."""

    courses_created: int = 0
    courses_completed: int = 0
    courses_enrolled: int = 0
    modules_completed: int = 0
    articles_read: int = 0
    perfect_scores: int = 0
    current_streak: int = 0
    ratings_given: int = 0
    bookmarks: int = 0
    total_xp: int = 0
    level: int = 1

    def value_for(self, trigger_type: str) -> int:
        field_name = TRIGGER_STAT_FIELDS.get(trigger_type)
        if field_name is None:
            return 0
        return getattr(self, field_name)


def _badge(
    badge_id: str,
    name_en: str,
    name_es: str,
    description_en: str,
    description_es: str,
    icon: str,
    tier: str,
    xp_reward: int,
    trigger_type: str,
    threshold: int,
) -> BadgeRecord:
    return BadgeRecord(
        id=badge_id,
        name_en=name_en,
        name_es=name_es,
        description_en=description_en,
        description_es=description_es,
        icon=icon,
        tier=tier,
        xp_reward=xp_reward,
        trigger_type=trigger_type,
        threshold=threshold,
    )


# =============================================================================
# Catalogue
# =============================================================================

ACHIEVEMENTS: list[BadgeRecord] = [
    # Course creation
    _badge("first_course", "Course Creator", "Creador de Cursos",
           "Created your first course", "Creaste tu primer curso",
           "🎓", "bronze", 50, "course_create", 1),
    _badge("educator", "Educator", "Educador",
           "Created 10 courses", "Creaste 10 cursos",
           "👨‍🏫", "gold", 500, "course_create", 10),
    _badge("master_educator", "Master Educator", "Educador Maestro",
           "Created 50 courses", "Creaste 50 cursos",
           "🏆", "platinum", 2000, "course_create", 50),
    # Course completion
    _badge("first_completion", "First Steps", "Primeros Pasos",
           "Completed your first course", "Completaste tu primer curso",
           "🎯", "bronze", 100, "course_complete", 1),
    _badge("knowledge_seeker", "Knowledge Seeker", "Buscador de Conocimiento",
           "Completed 5 courses", "Completaste 5 cursos",
           "📚", "silver", 300, "course_complete", 5),
    _badge("course_master", "Course Master", "Maestro de Cursos",
           "Completed 20 courses", "Completaste 20 cursos",
           "🌟", "gold", 1000, "course_complete", 20),
    _badge("module_marathon", "Module Marathon", "Maratón de Módulos",
           "Completed 25 course modules", "Completaste 25 módulos",
           "🏃", "silver", 250, "module_complete", 25),
    # Reading
    _badge("bookworm", "Bookworm", "Ratón de Biblioteca",
           "Read 10 articles", "Leíste 10 artículos",
           "🐛", "bronze", 50, "article_read", 10),
    _badge("news_junkie", "News Junkie", "Adicto a las Noticias",
           "Read 100 articles", "Leíste 100 artículos",
           "📰", "gold", 500, "article_read", 100),
    _badge("curator", "Curator", "Curador",
           "Saved 10 bookmarks", "Guardaste 10 marcadores",
           "🔖", "bronze", 50, "bookmark_count", 10),
    # Reviews
    _badge("critic", "Critic", "Crítico",
           "Rated 5 courses", "Calificaste 5 cursos",
           "⭐", "bronze", 75, "rating_given", 5),
    # Perfect performance
    _badge("perfectionist", "Perfectionist", "Perfeccionista",
           "Scored 100% on a quiz", "Obtuviste 100% en un quiz",
           "💯", "silver", 150, "perfect_score", 1),
    _badge("ace_student", "Ace Student", "Estudiante Destacado",
           "Scored 100% on 10 quizzes", "Obtuviste 100% en 10 quizzes",
           "🏅", "gold", 1000, "perfect_score", 10),
    # Consistency
    _badge("dedicated_learner", "Dedicated Learner", "Estudiante Dedicado",
           "7-day learning streak", "Racha de aprendizaje de 7 días",
           "🔥", "silver", 300, "streak_days", 7),
    _badge("unstoppable", "Unstoppable", "Imparable",
           "30-day learning streak", "Racha de aprendizaje de 30 días",
           "💪", "gold", 1500, "streak_days", 30),
    _badge("legend", "Legend", "Leyenda",
           "100-day learning streak", "Racha de aprendizaje de 100 días",
           "👑", "platinum", 5000, "streak_days", 100),
    # XP and levels
    _badge("xp_1000", "Thousand Club", "Club de los Mil",
           "Earned 1,000 XP", "Ganaste 1.000 XP",
           "✨", "bronze", 0, "xp_threshold", 1000),
    _badge("level_10", "Rising Star", "Estrella Ascendente",
           "Reached level 10", "Alcanzaste el nivel 10",
           "⭐", "silver", 500, "level", 10),
    _badge("level_25", "Elite Learner", "Estudiante Élite",
           "Reached level 25", "Alcanzaste el nivel 25",
           "💎", "gold", 2000, "level", 25),
    _badge("level_50", "AI Master", "Maestro de IA",
           "Reached level 50", "Alcanzaste el nivel 50",
           "🚀", "platinum", 10000, "level", 50),
]


def get_achievement(badge_id: str) -> BadgeRecord | None:
    for badge in ACHIEVEMENTS:
        if badge.id == badge_id:
            return badge
    return None


def is_unlocked(badge: BadgeRecord, stats: UserStats) -> bool:
    """True when the badge's counter has reached its threshold."""
    if badge.trigger_type not in TRIGGER_STAT_FIELDS:
        return False
    return stats.value_for(badge.trigger_type) >= badge.threshold


def check_unlocked(
    stats: UserStats,
    earned_ids: set[str] | frozenset[str],
    badges: list[BadgeRecord] | None = None,
) -> list[BadgeRecord]:
    """Badges whose condition holds and that the user doesn't have yet.

    Args:
        stats: Current counters for the user
        earned_ids: IDs of badges already earned
        badges: Catalogue to check (defaults to ACHIEVEMENTS)
    """
    catalogue = ACHIEVEMENTS if badges is None else badges
    return [b for b in catalogue if b.id not in earned_ids and is_unlocked(b, stats)]


_CONDITION_TEXT = {
    "en": {
        "xp_threshold": "Earn {value} XP",
        "level": "Reach level {value}",
        "streak_days": "Maintain a {value}-day streak",
        "article_read": "Read {value} articles",
        "course_complete": "Complete {value} courses",
        "course_create": "Create {value} courses",
        "module_complete": "Complete {value} course modules",
        "rating_given": "Give {value} ratings",
        "bookmark_count": "Save {value} bookmarks",
        "perfect_score": "Score 100% on {value} quizzes",
        "unknown": "Unknown condition",
    },
    "es": {
        "xp_threshold": "Gana {value} XP",
        "level": "Alcanza el nivel {value}",
        "streak_days": "Mantén una racha de {value} días",
        "article_read": "Lee {value} artículos",
        "course_complete": "Completa {value} cursos",
        "course_create": "Crea {value} cursos",
        "module_complete": "Completa {value} módulos de curso",
        "rating_given": "Da {value} calificaciones",
        "bookmark_count": "Guarda {value} marcadores",
        "perfect_score": "Obtén 100% en {value} quizzes",
        "unknown": "Condición desconocida",
    },
}


def format_trigger_condition(trigger_type: str, threshold: int, locale: str = "en") -> str:
    """Human-readable unlock condition, e.g. "Read 100 articles"."""
    texts = _CONDITION_TEXT["es" if locale == "es" else "en"]
    template = texts.get(trigger_type)
    if template is None:
        return texts["unknown"]
    return template.format(value=threshold)
