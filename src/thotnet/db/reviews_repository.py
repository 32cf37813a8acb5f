"""Repository functions for course_ratings."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class RatingRecord:
    id: str
    course_id: str
    user_id: str
    rating: int
    review_en: str | None
    review_es: str | None
    created_at: str
    updated_at: str
    display_name: str | None = None


def list_ratings(db: Database, course_id: str) -> list[RatingRecord]:
    """Ratings of a course with the reviewer's display name, newest first."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT r.*, p.display_name
            FROM course_ratings r
            LEFT JOIN user_profiles p ON p.id = r.user_id
            WHERE r.course_id = ?
            ORDER BY r.updated_at DESC
            """,
            (course_id,),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def get_rating(db: Database, course_id: str, user_id: str) -> RatingRecord | None:
    with db.connect() as conn:
        row = conn.execute(
            "SELECT * FROM course_ratings WHERE course_id = ? AND user_id = ?",
            (course_id, user_id),
        ).fetchone()
    return _row_to_record(row) if row else None


def upsert_rating(
    db: Database,
    course_id: str,
    user_id: str,
    rating: int,
    review: str | None = None,
    locale: str = "en",
) -> tuple[RatingRecord, bool]:
    """Create or replace the caller's rating for a course.

    Returns:
        (record, created) where created is False on update
    """
    now = utc_now()
    review_column = "review_es" if locale == "es" else "review_en"

    with db.connect() as conn:
        existing = conn.execute(
            "SELECT id FROM course_ratings WHERE course_id = ? AND user_id = ?",
            (course_id, user_id),
        ).fetchone()

        if existing is None:
            conn.execute(
                f"""
                INSERT INTO course_ratings (
                    id, course_id, user_id, rating, {review_column}, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (new_id(), course_id, user_id, rating, review, now, now),
            )
        else:
            conn.execute(
                f"""
                UPDATE course_ratings
                SET rating = ?, {review_column} = ?, updated_at = ?
                WHERE id = ?
                """,
                (rating, review, now, existing["id"]),
            )

        row = conn.execute(
            "SELECT * FROM course_ratings WHERE course_id = ? AND user_id = ?",
            (course_id, user_id),
        ).fetchone()

    logger.debug("course_ratings.upserted", course_id=course_id, created=existing is None)
    return _row_to_record(row), existing is None


def delete_rating(db: Database, course_id: str, user_id: str) -> bool:
    with db.connect() as conn:
        cursor = conn.execute(
            "DELETE FROM course_ratings WHERE course_id = ? AND user_id = ?",
            (course_id, user_id),
        )
    return cursor.rowcount > 0


def count_user_ratings(db: Database, user_id: str) -> int:
    with db.connect() as conn:
        return conn.execute(
            "SELECT COUNT(*) FROM course_ratings WHERE user_id = ?", (user_id,)
        ).fetchone()[0]


def _row_to_record(row: sqlite3.Row) -> RatingRecord:
    keys = row.keys()
    return RatingRecord(
        id=row["id"],
        course_id=row["course_id"],
        user_id=row["user_id"],
        rating=row["rating"],
        review_en=row["review_en"],
        review_es=row["review_es"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        display_name=row["display_name"] if "display_name" in keys else None,
    )
