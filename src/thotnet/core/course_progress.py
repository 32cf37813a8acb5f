"""Pure helpers over a course's modules and a user's progress rows.

Modules and progress rows are duck-typed: modules need `id` (and
`order_index` for get_next_module), progress rows need `module_id`,
`completed`, `score` and `time_spent`.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence


def _completed_ids(progress: Iterable[Any]) -> set[str]:
    return {p.module_id for p in progress if p.completed}


def calculate_course_progress(modules: Sequence[Any], progress: Iterable[Any]) -> int:
    """Percent of modules completed, rounded to an integer."""
    if not modules:
        return 0

    done = _completed_ids(progress)
    completed = sum(1 for m in modules if m.id in done)
    return round(completed / len(modules) * 100)


def is_course_complete(modules: Sequence[Any], progress: Iterable[Any]) -> bool:
    """True when every module has a completed progress row.

    A course without modules is never complete.
    """
    if not modules:
        return False

    done = _completed_ids(progress)
    return all(m.id in done for m in modules)


def get_next_module(modules: Sequence[Any], progress: Iterable[Any]) -> Any | None:
    """First module (by order_index) that isn't completed, or None."""
    done = _completed_ids(progress)
    for module in sorted(modules, key=lambda m: m.order_index):
        if module.id not in done:
            return module
    return None


def _scores(progress: Iterable[Any]) -> list[int]:
    return [p.score for p in progress if p.score is not None]


def average_quiz_score(progress: Iterable[Any]) -> int:
    scores = _scores(progress)
    if not scores:
        return 0
    return round(sum(scores) / len(scores))


def total_time_spent(progress: Iterable[Any]) -> int:
    """Sum of time_spent in seconds."""
    return sum(p.time_spent or 0 for p in progress)


def format_time_spent(seconds: int, locale: str = "en") -> str:
    """Format seconds as "2h 5m", "12 min" or "< 1 min".

    The short forms read the same in English and Spanish.
    """
    hours, remainder = divmod(max(int(seconds), 0), 3600)
    minutes = remainder // 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes} min"
    return "< 1 min"


def has_perfect_score(progress: Iterable[Any]) -> bool:
    """True when there is at least one score and every score is 100."""
    scores = _scores(progress)
    return bool(scores) and all(score == 100 for score in scores)
