"""Repository functions for user_courses (enrollments and created courses).

Enrollment inserts and the course enrollment counter are updated in the
same transaction so the counter never drifts from the rows.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)

ENROLLED = "enrolled"
CREATED = "created"


@dataclass
class EnrollmentRecord:
    """user_courses row."""

    id: str
    user_id: str
    course_id: str
    relationship_type: str
    progress_percentage: int
    enrolled_at: str
    completed_at: str | None
    last_accessed_at: str | None


def get_enrollment(
    db: Database,
    user_id: str,
    course_id: str,
    relationship_type: str = ENROLLED,
) -> EnrollmentRecord | None:
    with db.connect() as conn:
        row = conn.execute(
            """
            SELECT * FROM user_courses
            WHERE user_id = ? AND course_id = ? AND relationship_type = ?
            """,
            (user_id, course_id, relationship_type),
        ).fetchone()

    if row is None:
        return None

    return _row_to_record(row)


def enroll(db: Database, user_id: str, course_id: str) -> EnrollmentRecord:
    """Create an enrollment with zero progress and bump the course counter.

    Raises:
        sqlite3.IntegrityError: If the user is already enrolled
    """
    enrollment_id = new_id()
    now = utc_now()

    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO user_courses (
                id, user_id, course_id, relationship_type,
                progress_percentage, enrolled_at, last_accessed_at
            ) VALUES (?, ?, ?, ?, 0, ?, ?)
            """,
            (enrollment_id, user_id, course_id, ENROLLED, now, now),
        )
        conn.execute(
            "UPDATE courses SET enrollment_count = enrollment_count + 1 WHERE id = ?",
            (course_id,),
        )
        row = conn.execute("SELECT * FROM user_courses WHERE id = ?", (enrollment_id,)).fetchone()

    logger.debug("user_courses.enrolled", user_id=user_id, course_id=course_id)
    return _row_to_record(row)


def unenroll(db: Database, user_id: str, course_id: str) -> bool:
    """Delete an enrollment and decrement the course counter.

    Returns:
        True if deleted, False if not enrolled
    """
    with db.connect() as conn:
        cursor = conn.execute(
            """
            DELETE FROM user_courses
            WHERE user_id = ? AND course_id = ? AND relationship_type = ?
            """,
            (user_id, course_id, ENROLLED),
        )
        deleted = cursor.rowcount > 0
        if deleted:
            conn.execute(
                """
                UPDATE courses SET enrollment_count = MAX(enrollment_count - 1, 0)
                WHERE id = ?
                """,
                (course_id,),
            )

    if deleted:
        logger.debug("user_courses.unenrolled", user_id=user_id, course_id=course_id)

    return deleted


def add_created(db: Database, user_id: str, course_id: str) -> None:
    """Record that a user created (generated) a course."""
    with db.connect() as conn:
        conn.execute(
            """
            INSERT OR IGNORE INTO user_courses (
                id, user_id, course_id, relationship_type, progress_percentage, enrolled_at
            ) VALUES (?, ?, ?, ?, 0, ?)
            """,
            (new_id(), user_id, course_id, CREATED, utc_now()),
        )


def set_progress(
    db: Database,
    user_id: str,
    course_id: str,
    progress_percentage: int,
    completed_at: str | None = None,
) -> None:
    """Update the enrollment's progress; completed_at is only set once."""
    with db.connect() as conn:
        conn.execute(
            """
            UPDATE user_courses
            SET progress_percentage = ?,
                completed_at = COALESCE(completed_at, ?),
                last_accessed_at = ?
            WHERE user_id = ? AND course_id = ? AND relationship_type = ?
            """,
            (progress_percentage, completed_at, utc_now(), user_id, course_id, ENROLLED),
        )


def list_user_courses(db: Database, user_id: str) -> list[tuple[EnrollmentRecord, sqlite3.Row]]:
    """All relationships of a user joined with course columns.

    Returns:
        List of (EnrollmentRecord, course row), most recent first
    """
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT uc.*, c.title_en, c.title_es, c.description_en, c.description_es,
                   c.difficulty, c.duration_minutes, c.category, c.thumbnail_url,
                   (SELECT COUNT(*) FROM course_modules m WHERE m.course_id = c.id) AS total_modules
            FROM user_courses uc
            JOIN courses c ON c.id = uc.course_id
            WHERE uc.user_id = ?
            ORDER BY uc.enrolled_at DESC
            """,
            (user_id,),
        ).fetchall()

    return [(_row_to_record(row), row) for row in rows]


def count_relationships(db: Database, user_id: str, relationship_type: str, completed_only: bool = False) -> int:
    query = "SELECT COUNT(*) FROM user_courses WHERE user_id = ? AND relationship_type = ?"
    if completed_only:
        query += " AND completed_at IS NOT NULL"
    with db.connect() as conn:
        return conn.execute(query, (user_id, relationship_type)).fetchone()[0]


def _row_to_record(row: sqlite3.Row) -> EnrollmentRecord:
    return EnrollmentRecord(
        id=row["id"],
        user_id=row["user_id"],
        course_id=row["course_id"],
        relationship_type=row["relationship_type"],
        progress_percentage=row["progress_percentage"],
        enrolled_at=row["enrolled_at"],
        completed_at=row["completed_at"],
        last_accessed_at=row["last_accessed_at"],
    )
