"""Repository functions for the user_interests interaction log."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class InteractionRecord:
    id: str
    user_id: str
    content_type: str
    content_id: str
    interaction_type: str
    strength: int
    created_at: str


def insert_interaction(
    db: Database,
    user_id: str,
    content_type: str,
    content_id: str,
    interaction_type: str,
    strength: int,
    created_at: str | None = None,
) -> str:
    interaction_id = new_id()
    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO user_interests (
                id, user_id, content_type, content_id, interaction_type, strength, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                interaction_id,
                user_id,
                content_type,
                content_id,
                interaction_type,
                strength,
                created_at or utc_now(),
            ),
        )

    logger.debug("user_interests.inserted", user_id=user_id, interaction_type=interaction_type)
    return interaction_id


def recent_interactions(db: Database, user_id: str, limit: int = 100) -> list[InteractionRecord]:
    """Latest interactions of a user across content types."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT * FROM user_interests
            WHERE user_id = ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def seen_content_ids(db: Database, user_id: str, content_type: str) -> set[str]:
    with db.connect() as conn:
        rows = conn.execute(
            "SELECT DISTINCT content_id FROM user_interests WHERE user_id = ? AND content_type = ?",
            (user_id, content_type),
        ).fetchall()
    return {row["content_id"] for row in rows}


def similar_user_ids(
    db: Database,
    user_id: str,
    content_type: str,
    sample_size: int = 20,
    limit: int = 50,
) -> list[str]:
    """Other users who interacted with any of the user's recent content."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT DISTINCT other.user_id
            FROM user_interests other
            WHERE other.user_id != ?
              AND other.content_id IN (
                  SELECT content_id FROM user_interests
                  WHERE user_id = ? AND content_type = ?
                  ORDER BY created_at DESC
                  LIMIT ?
              )
            LIMIT ?
            """,
            (user_id, user_id, content_type, sample_size, limit),
        ).fetchall()

    return [row["user_id"] for row in rows]


def strong_interaction_scores(
    db: Database,
    user_ids: list[str],
    content_type: str,
    min_strength: int = 3,
    limit: int = 10,
) -> dict[str, int]:
    """Summed strength per content item for likes, bookmarks and completions."""
    if not user_ids:
        return {}

    placeholders = ", ".join("?" for _ in user_ids)
    with db.connect() as conn:
        rows = conn.execute(
            f"""
            SELECT content_id, SUM(strength) AS total
            FROM user_interests
            WHERE user_id IN ({placeholders})
              AND content_type = ?
              AND strength >= ?
            GROUP BY content_id
            ORDER BY total DESC
            LIMIT ?
            """,
            (*user_ids, content_type, min_strength, limit),
        ).fetchall()

    return {row["content_id"]: row["total"] for row in rows}


def _row_to_record(row: sqlite3.Row) -> InteractionRecord:
    return InteractionRecord(
        id=row["id"],
        user_id=row["user_id"],
        content_type=row["content_type"],
        content_id=row["content_id"],
        interaction_type=row["interaction_type"],
        strength=row["strength"],
        created_at=row["created_at"],
    )
