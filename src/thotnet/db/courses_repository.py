"""Repository functions for courses and course_modules tables."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class ModuleRecord:
    """Course module row with both locales."""

    id: str
    course_id: str
    order_index: int
    title_en: str
    title_es: str
    content_en: str
    content_es: str
    type: str
    estimated_time: int
    resources: list[dict]


@dataclass
class CourseRecord:
    """Course row with both locales."""

    id: str
    title_en: str
    title_es: str
    description_en: str
    description_es: str
    difficulty: str
    duration_minutes: int
    topics: list[str]
    category: str
    status: str
    ai_generated: bool
    generation_prompt: str | None
    thumbnail_url: str | None
    enrollment_count: int
    rating_avg: float
    view_count: int
    created_by: str | None
    created_at: str


@dataclass
class NewModule:
    """Module payload for insert_course."""

    title: str
    content: str
    type: str = "article"
    estimated_time: int = 15
    resources: list[dict] = field(default_factory=list)


def insert_course(
    db: Database,
    title: str,
    description: str,
    locale: str,
    difficulty: str,
    duration_minutes: int,
    topics: list[str],
    category: str,
    modules: list[NewModule],
    ai_generated: bool = False,
    generation_prompt: str | None = None,
    created_by: str | None = None,
    status: str = "published",
) -> str:
    """Insert a course and its modules in one transaction.

    Text is stored under the given locale's columns; the other locale stays
    empty and is filled by the read-side fallback.

    Returns:
        New course ID
    """
    course_id = new_id()
    other = "es" if locale == "en" else "en"
    course_text = {
        f"title_{locale}": title,
        f"description_{locale}": description,
        f"title_{other}": "",
        f"description_{other}": "",
    }

    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO courses (
                id, title_en, title_es, description_en, description_es,
                difficulty, duration_minutes, topics, category, status,
                ai_generated, generation_prompt, created_by, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                course_id,
                course_text["title_en"],
                course_text["title_es"],
                course_text["description_en"],
                course_text["description_es"],
                difficulty,
                duration_minutes,
                json.dumps(topics),
                category,
                status,
                int(ai_generated),
                generation_prompt,
                created_by,
                utc_now(),
            ),
        )
        for index, module in enumerate(modules):
            module_text = {
                f"title_{locale}": module.title,
                f"content_{locale}": module.content,
                f"title_{other}": "",
                f"content_{other}": "",
            }
            conn.execute(
                """
                INSERT INTO course_modules (
                    id, course_id, order_index, title_en, title_es,
                    content_en, content_es, type, estimated_time, resources
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_id(),
                    course_id,
                    index,
                    module_text["title_en"],
                    module_text["title_es"],
                    module_text["content_en"],
                    module_text["content_es"],
                    module.type,
                    module.estimated_time,
                    json.dumps(module.resources),
                ),
            )

    logger.debug("courses.inserted", course_id=course_id, modules=len(modules))
    return course_id


def get_course(db: Database, course_id: str) -> CourseRecord | None:
    """Get course by ID.

    Returns:
        CourseRecord if found, None otherwise
    """
    with db.connect() as conn:
        row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()

    if row is None:
        return None

    return _row_to_course(row)


def list_courses(
    db: Database,
    difficulty: str | None = None,
    category: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[CourseRecord], int]:
    """List published courses, newest first.

    Returns:
        (page of courses, total matching count)
    """
    where = ["status = 'published'"]
    params: list[object] = []
    if difficulty:
        where.append("difficulty = ?")
        params.append(difficulty)
    if category:
        where.append("category = ?")
        params.append(category)
    clause = " AND ".join(where)

    with db.connect() as conn:
        total = conn.execute(f"SELECT COUNT(*) FROM courses WHERE {clause}", params).fetchone()[0]
        rows = conn.execute(
            f"""
            SELECT * FROM courses WHERE {clause}
            ORDER BY created_at DESC
            LIMIT ? OFFSET ?
            """,
            (*params, limit, offset),
        ).fetchall()

    return [_row_to_course(row) for row in rows], total


def list_modules(db: Database, course_id: str) -> list[ModuleRecord]:
    """Modules of a course ordered by order_index."""
    with db.connect() as conn:
        rows = conn.execute(
            "SELECT * FROM course_modules WHERE course_id = ? ORDER BY order_index",
            (course_id,),
        ).fetchall()

    return [_row_to_module(row) for row in rows]


def get_module(db: Database, course_id: str, module_id: str) -> ModuleRecord | None:
    with db.connect() as conn:
        row = conn.execute(
            "SELECT * FROM course_modules WHERE id = ? AND course_id = ?",
            (module_id, course_id),
        ).fetchone()
    return _row_to_module(row) if row else None


def count_modules(db: Database, course_id: str) -> int:
    with db.connect() as conn:
        return conn.execute(
            "SELECT COUNT(*) FROM course_modules WHERE course_id = ?", (course_id,)
        ).fetchone()[0]


def increment_view_count(db: Database, course_id: str) -> None:
    with db.connect() as conn:
        conn.execute("UPDATE courses SET view_count = view_count + 1 WHERE id = ?", (course_id,))


def set_rating_avg(db: Database, course_id: str, rating_avg: float) -> None:
    with db.connect() as conn:
        conn.execute("UPDATE courses SET rating_avg = ? WHERE id = ?", (rating_avg, course_id))


def set_thumbnail(db: Database, course_id: str, thumbnail_url: str) -> None:
    with db.connect() as conn:
        conn.execute("UPDATE courses SET thumbnail_url = ? WHERE id = ?", (thumbnail_url, course_id))

    logger.debug("courses.thumbnail_set", course_id=course_id)


def list_courses_in_categories(db: Database, categories: list[str], limit: int = 20) -> list[CourseRecord]:
    """Newest published courses in any of the given categories."""
    if not categories:
        return []
    placeholders = ", ".join("?" for _ in categories)
    with db.connect() as conn:
        rows = conn.execute(
            f"""
            SELECT * FROM courses
            WHERE status = 'published' AND category IN ({placeholders})
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (*categories, limit),
        ).fetchall()

    return [_row_to_course(row) for row in rows]


def list_trending_courses(db: Database, limit: int) -> list[CourseRecord]:
    """Published courses ordered by views then enrollments."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT * FROM courses WHERE status = 'published'
            ORDER BY view_count DESC, enrollment_count DESC, created_at DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()

    return [_row_to_course(row) for row in rows]


def get_courses_by_ids(db: Database, course_ids: list[str]) -> list[CourseRecord]:
    if not course_ids:
        return []
    placeholders = ", ".join("?" for _ in course_ids)
    with db.connect() as conn:
        rows = conn.execute(
            f"SELECT * FROM courses WHERE id IN ({placeholders})", course_ids
        ).fetchall()
    return [_row_to_course(row) for row in rows]


def _row_to_course(row: sqlite3.Row) -> CourseRecord:
    """Convert database row to CourseRecord."""
    return CourseRecord(
        id=row["id"],
        title_en=row["title_en"],
        title_es=row["title_es"],
        description_en=row["description_en"],
        description_es=row["description_es"],
        difficulty=row["difficulty"],
        duration_minutes=row["duration_minutes"],
        topics=json.loads(row["topics"]) if row["topics"] else [],
        category=row["category"],
        status=row["status"],
        ai_generated=bool(row["ai_generated"]),
        generation_prompt=row["generation_prompt"],
        thumbnail_url=row["thumbnail_url"],
        enrollment_count=row["enrollment_count"],
        rating_avg=row["rating_avg"],
        view_count=row["view_count"],
        created_by=row["created_by"],
        created_at=row["created_at"],
    )


def _row_to_module(row: sqlite3.Row) -> ModuleRecord:
    return ModuleRecord(
        id=row["id"],
        course_id=row["course_id"],
        order_index=row["order_index"],
        title_en=row["title_en"],
        title_es=row["title_es"],
        content_en=row["content_en"],
        content_es=row["content_es"],
        type=row["type"],
        estimated_time=row["estimated_time"],
        resources=json.loads(row["resources"]) if row["resources"] else [],
    )
