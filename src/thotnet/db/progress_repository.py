"""Repository functions for per-module progress (user_progress table)."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class ProgressRecord:
    """user_progress row."""

    id: str
    user_id: str
    course_id: str
    module_id: str
    completed: bool
    score: int | None
    time_spent: int
    completed_at: str | None
    updated_at: str


def list_progress(db: Database, user_id: str, course_id: str) -> list[ProgressRecord]:
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT * FROM user_progress
            WHERE user_id = ? AND course_id = ?
            ORDER BY updated_at
            """,
            (user_id, course_id),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def get_progress(db: Database, user_id: str, course_id: str, module_id: str) -> ProgressRecord | None:
    with db.connect() as conn:
        row = conn.execute(
            """
            SELECT * FROM user_progress
            WHERE user_id = ? AND course_id = ? AND module_id = ?
            """,
            (user_id, course_id, module_id),
        ).fetchone()

    return _row_to_record(row) if row else None


def upsert_progress(
    db: Database,
    user_id: str,
    course_id: str,
    module_id: str,
    completed: bool | None = None,
    score: int | None = None,
    time_spent: int = 0,
) -> tuple[ProgressRecord, bool]:
    """Create or update progress for one module.

    Time spent accumulates across calls. A module never goes back from
    completed to not completed.

    Returns:
        (record, newly_completed) where newly_completed is True only on the
        first transition to completed
    """
    now = utc_now()

    with db.connect() as conn:
        existing = conn.execute(
            """
            SELECT * FROM user_progress
            WHERE user_id = ? AND course_id = ? AND module_id = ?
            """,
            (user_id, course_id, module_id),
        ).fetchone()

        was_completed = bool(existing["completed"]) if existing else False
        is_completed = was_completed or bool(completed)
        newly_completed = is_completed and not was_completed

        if existing is None:
            conn.execute(
                """
                INSERT INTO user_progress (
                    id, user_id, course_id, module_id, completed,
                    score, time_spent, completed_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_id(),
                    user_id,
                    course_id,
                    module_id,
                    int(is_completed),
                    score,
                    max(time_spent, 0),
                    now if is_completed else None,
                    now,
                ),
            )
        else:
            conn.execute(
                """
                UPDATE user_progress
                SET completed = ?,
                    score = COALESCE(?, score),
                    time_spent = time_spent + ?,
                    completed_at = COALESCE(completed_at, ?),
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    int(is_completed),
                    score,
                    max(time_spent, 0),
                    now if newly_completed else None,
                    now,
                    existing["id"],
                ),
            )

        row = conn.execute(
            """
            SELECT * FROM user_progress
            WHERE user_id = ? AND course_id = ? AND module_id = ?
            """,
            (user_id, course_id, module_id),
        ).fetchone()

    logger.debug(
        "user_progress.upserted",
        user_id=user_id,
        module_id=module_id,
        newly_completed=newly_completed,
    )
    return _row_to_record(row), newly_completed


def count_completed_modules(db: Database, user_id: str) -> int:
    with db.connect() as conn:
        return conn.execute(
            "SELECT COUNT(*) FROM user_progress WHERE user_id = ? AND completed = 1",
            (user_id,),
        ).fetchone()[0]


def count_perfect_scores(db: Database, user_id: str) -> int:
    with db.connect() as conn:
        return conn.execute(
            "SELECT COUNT(*) FROM user_progress WHERE user_id = ? AND score = 100",
            (user_id,),
        ).fetchone()[0]


def _row_to_record(row: sqlite3.Row) -> ProgressRecord:
    return ProgressRecord(
        id=row["id"],
        user_id=row["user_id"],
        course_id=row["course_id"],
        module_id=row["module_id"],
        completed=bool(row["completed"]),
        score=row["score"],
        time_spent=row["time_spent"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
    )
