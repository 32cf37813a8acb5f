"""Repository functions for user profiles and the XP log.

Leaderboard queries live here too since they rank profiles.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)

LEADERBOARD_PERIODS = ("all", "week", "month")


@dataclass
class ProfileRecord:
    """User profile row."""

    id: str
    display_name: str | None
    email: str | None
    avatar_url: str | None
    locale: str
    total_xp: int
    level: int
    streak_days: int
    longest_streak: int
    last_activity_at: str | None
    streak_updated_on: str | None
    created_at: str

    @property
    def is_complete(self) -> bool:
        return bool(self.display_name and self.avatar_url)


@dataclass
class XPLogEntry:
    id: str
    user_id: str
    xp_amount: int
    action_type: str
    reference_id: str | None
    created_at: str


@dataclass
class LeaderboardRow:
    rank: int
    user_id: str
    display_name: str | None
    avatar_url: str | None
    xp: int
    level: int
    streak_days: int


def get_profile(db: Database, user_id: str) -> ProfileRecord | None:
    """Get profile by user ID.

    Returns:
        ProfileRecord if found, None otherwise
    """
    with db.connect() as conn:
        row = conn.execute("SELECT * FROM user_profiles WHERE id = ?", (user_id,)).fetchone()

    if row is None:
        return None

    return _row_to_profile(row)


def ensure_profile(
    db: Database,
    user_id: str,
    display_name: str | None = None,
    email: str | None = None,
    locale: str = "en",
) -> ProfileRecord:
    """Return the profile for user_id, creating an empty one if missing."""
    with db.connect() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO user_profiles (id, display_name, email, locale)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, display_name, email, locale),
        )
        row = conn.execute("SELECT * FROM user_profiles WHERE id = ?", (user_id,)).fetchone()

    if cursor.rowcount > 0:
        logger.debug("profiles.created", user_id=user_id)

    return _row_to_profile(row)


def update_profile(
    db: Database,
    user_id: str,
    display_name: str | None = None,
    avatar_url: str | None = None,
    locale: str | None = None,
) -> ProfileRecord | None:
    """Update the editable profile fields that were provided.

    Returns:
        Updated ProfileRecord, or None if the profile doesn't exist
    """
    assignments: list[str] = []
    params: list[object] = []
    for column, value in (("display_name", display_name), ("avatar_url", avatar_url), ("locale", locale)):
        if value is not None:
            assignments.append(f"{column} = ?")
            params.append(value)

    with db.connect() as conn:
        if assignments:
            conn.execute(
                f"UPDATE user_profiles SET {', '.join(assignments)} WHERE id = ?",
                (*params, user_id),
            )
        row = conn.execute("SELECT * FROM user_profiles WHERE id = ?", (user_id,)).fetchone()

    if row is None:
        return None

    logger.debug("profiles.updated", user_id=user_id, fields=len(assignments))
    return _row_to_profile(row)


def list_profiles(db: Database) -> list[ProfileRecord]:
    with db.connect() as conn:
        rows = conn.execute("SELECT * FROM user_profiles ORDER BY created_at").fetchall()
    return [_row_to_profile(row) for row in rows]


def set_level(db: Database, user_id: str, level: int) -> None:
    with db.connect() as conn:
        conn.execute("UPDATE user_profiles SET level = ? WHERE id = ?", (level, user_id))


def set_streak(
    db: Database,
    user_id: str,
    streak_days: int,
    longest_streak: int,
    streak_updated_on: str,
) -> None:
    """Persist streak counters, the streak date and the activity timestamp."""
    with db.connect() as conn:
        conn.execute(
            """
            UPDATE user_profiles
            SET streak_days = ?, longest_streak = ?, streak_updated_on = ?, last_activity_at = ?
            WHERE id = ?
            """,
            (streak_days, longest_streak, streak_updated_on, utc_now(), user_id),
        )


# =============================================================================
# XP log
# =============================================================================


def record_xp(
    db: Database,
    user_id: str,
    amount: int,
    action_type: str,
    reference_id: str | None,
    new_level_for: Callable[[int], int],
) -> tuple[int, int, int]:
    """Insert an XP log row and bump the profile totals atomically.

    Args:
        db: Database handle
        user_id: Profile receiving XP
        amount: Positive XP amount
        action_type: Action key (see thotnet.core.xp_system.XP_ACTIONS)
        reference_id: Optional ID of the entity that triggered the award
        new_level_for: Callable mapping total XP to a level

    Returns:
        (old_level, new_total_xp, new_level)

    Raises:
        LookupError: If the profile doesn't exist
    """
    now = utc_now()
    with db.connect() as conn:
        row = conn.execute(
            "SELECT total_xp, level FROM user_profiles WHERE id = ?", (user_id,)
        ).fetchone()
        if row is None:
            raise LookupError(f"Profile not found: {user_id}")

        old_level = row["level"]
        new_total = row["total_xp"] + amount
        new_level = new_level_for(new_total)

        conn.execute(
            """
            INSERT INTO user_xp_log (id, user_id, xp_amount, action_type, reference_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (new_id(), user_id, amount, action_type, reference_id, now),
        )
        conn.execute(
            """
            UPDATE user_profiles
            SET total_xp = ?, level = ?, last_activity_at = ?
            WHERE id = ?
            """,
            (new_total, new_level, now, user_id),
        )

    logger.debug("xp_log.inserted", user_id=user_id, amount=amount, action_type=action_type)
    return old_level, new_total, new_level


def has_xp_action(
    db: Database,
    user_id: str,
    action_type: str,
    reference_id: str | None = None,
) -> bool:
    """Check whether an action was already rewarded (optionally for one reference)."""
    query = "SELECT 1 FROM user_xp_log WHERE user_id = ? AND action_type = ?"
    params: list[object] = [user_id, action_type]
    if reference_id is not None:
        query += " AND reference_id = ?"
        params.append(reference_id)

    with db.connect() as conn:
        row = conn.execute(query + " LIMIT 1", params).fetchone()

    return row is not None


def count_xp_actions(db: Database, user_id: str, action_type: str) -> int:
    with db.connect() as conn:
        row = conn.execute(
            "SELECT COUNT(*) FROM user_xp_log WHERE user_id = ? AND action_type = ?",
            (user_id, action_type),
        ).fetchone()
    return row[0]


def list_xp_log(db: Database, user_id: str, limit: int = 10) -> list[XPLogEntry]:
    """Most recent XP transactions for a user."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT * FROM user_xp_log
            WHERE user_id = ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()

    return [
        XPLogEntry(
            id=row["id"],
            user_id=row["user_id"],
            xp_amount=row["xp_amount"],
            action_type=row["action_type"],
            reference_id=row["reference_id"],
            created_at=row["created_at"],
        )
        for row in rows
    ]


# =============================================================================
# Leaderboard
# =============================================================================


def _period_start(period: str, now: datetime | None = None) -> str | None:
    now = now or datetime.now(timezone.utc)
    if period == "week":
        return (now - timedelta(days=7)).isoformat()
    if period == "month":
        return (now - timedelta(days=30)).isoformat()
    return None


def _ranked_query(period: str) -> tuple[str, list[object]]:
    """SQL selecting (user_id, xp) for the period, highest first."""
    since = _period_start(period)
    if since is None:
        return (
            """
            SELECT id AS user_id, total_xp AS xp
            FROM user_profiles
            WHERE total_xp > 0
            """,
            [],
        )
    return (
        """
        SELECT p.id AS user_id, SUM(l.xp_amount) AS xp
        FROM user_profiles p
        JOIN user_xp_log l ON l.user_id = p.id
        WHERE p.last_activity_at >= ? AND l.created_at >= ?
        GROUP BY p.id
        """,
        [since, since],
    )


def get_leaderboard(db: Database, period: str = "all", limit: int = 50) -> list[LeaderboardRow]:
    """Top users by XP for the period, ranked 1..n."""
    ranked_sql, params = _ranked_query(period)
    with db.connect() as conn:
        rows = conn.execute(
            f"""
            SELECT r.user_id, r.xp, p.display_name, p.avatar_url, p.level, p.streak_days
            FROM ({ranked_sql}) r
            JOIN user_profiles p ON p.id = r.user_id
            ORDER BY r.xp DESC, p.created_at ASC
            LIMIT ?
            """,
            (*params, limit),
        ).fetchall()

    return [
        LeaderboardRow(
            rank=index + 1,
            user_id=row["user_id"],
            display_name=row["display_name"],
            avatar_url=row["avatar_url"],
            xp=row["xp"],
            level=row["level"],
            streak_days=row["streak_days"],
        )
        for index, row in enumerate(rows)
    ]


def get_user_rank(db: Database, user_id: str, period: str = "all") -> int | None:
    """Rank of one user: number of users with strictly more XP, plus one."""
    ranked_sql, params = _ranked_query(period)
    with db.connect() as conn:
        own = conn.execute(
            f"SELECT xp FROM ({ranked_sql}) r WHERE r.user_id = ?", (*params, user_id)
        ).fetchone()
        if own is None:
            return None
        ahead = conn.execute(
            f"SELECT COUNT(*) FROM ({ranked_sql}) r WHERE r.xp > ?", (*params, own["xp"])
        ).fetchone()

    return ahead[0] + 1


def _row_to_profile(row: sqlite3.Row) -> ProfileRecord:
    """Convert database row to ProfileRecord."""
    return ProfileRecord(
        id=row["id"],
        display_name=row["display_name"],
        email=row["email"],
        avatar_url=row["avatar_url"],
        locale=row["locale"],
        total_xp=row["total_xp"],
        level=row["level"],
        streak_days=row["streak_days"],
        longest_streak=row["longest_streak"],
        last_activity_at=row["last_activity_at"],
        streak_updated_on=row["streak_updated_on"],
        created_at=row["created_at"],
    )
