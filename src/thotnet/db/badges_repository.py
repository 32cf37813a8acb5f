"""Repository functions for badges and user_badges."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class BadgeRecord:
    """Badge definition row."""

    id: str
    name_en: str
    name_es: str
    description_en: str
    description_es: str
    icon: str
    tier: str
    xp_reward: int
    trigger_type: str
    threshold: int


@dataclass
class EarnedBadge:
    badge: BadgeRecord
    earned_at: str


def upsert_badges(db: Database, badges: list[BadgeRecord]) -> int:
    """Insert or refresh badge definitions.

    Returns:
        Number of badges written
    """
    with db.connect() as conn:
        conn.executemany(
            """
            INSERT INTO badges (
                id, name_en, name_es, description_en, description_es,
                icon, tier, xp_reward, trigger_type, threshold
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name_en = excluded.name_en,
                name_es = excluded.name_es,
                description_en = excluded.description_en,
                description_es = excluded.description_es,
                icon = excluded.icon,
                tier = excluded.tier,
                xp_reward = excluded.xp_reward,
                trigger_type = excluded.trigger_type,
                threshold = excluded.threshold
            """,
            [
                (
                    b.id,
                    b.name_en,
                    b.name_es,
                    b.description_en,
                    b.description_es,
                    b.icon,
                    b.tier,
                    b.xp_reward,
                    b.trigger_type,
                    b.threshold,
                )
                for b in badges
            ],
        )

    logger.info("badges.seeded", count=len(badges))
    return len(badges)


def list_badges(db: Database) -> list[BadgeRecord]:
    with db.connect() as conn:
        rows = conn.execute("SELECT * FROM badges ORDER BY trigger_type, threshold").fetchall()
    return [_row_to_badge(row) for row in rows]


def earned_badge_ids(db: Database, user_id: str) -> set[str]:
    with db.connect() as conn:
        rows = conn.execute("SELECT badge_id FROM user_badges WHERE user_id = ?", (user_id,)).fetchall()
    return {row["badge_id"] for row in rows}


def list_user_badges(db: Database, user_id: str) -> list[EarnedBadge]:
    """Badges earned by a user, most recent first."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT b.*, ub.earned_at
            FROM user_badges ub
            JOIN badges b ON b.id = ub.badge_id
            WHERE ub.user_id = ?
            ORDER BY ub.earned_at DESC
            """,
            (user_id,),
        ).fetchall()

    return [EarnedBadge(badge=_row_to_badge(row), earned_at=row["earned_at"]) for row in rows]


def award_badge(db: Database, user_id: str, badge_id: str) -> bool:
    """Record a badge for a user.

    Returns:
        True if newly awarded, False if the user already had it
    """
    with db.connect() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO user_badges (id, user_id, badge_id, earned_at)
            VALUES (?, ?, ?, ?)
            """,
            (new_id(), user_id, badge_id, utc_now()),
        )

    awarded = cursor.rowcount > 0
    if awarded:
        logger.debug("user_badges.awarded", user_id=user_id, badge_id=badge_id)

    return awarded


def _row_to_badge(row: sqlite3.Row) -> BadgeRecord:
    return BadgeRecord(
        id=row["id"],
        name_en=row["name_en"],
        name_es=row["name_es"],
        description_en=row["description_en"],
        description_es=row["description_es"],
        icon=row["icon"],
        tier=row["tier"],
        xp_reward=row["xp_reward"],
        trigger_type=row["trigger_type"],
        threshold=row["threshold"],
    )
