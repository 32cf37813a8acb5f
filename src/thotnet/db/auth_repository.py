"""Bearer-token session storage."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import structlog

from thotnet.db.database import Database

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_DAYS = 30


def create_session(db: Database, user_id: str, ttl_days: int = DEFAULT_SESSION_DAYS) -> str:
    """Issue a new session token for an existing profile.

    Returns:
        The opaque bearer token
    """
    token = secrets.token_urlsafe(32)
    expires_at = (datetime.now(timezone.utc) + timedelta(days=ttl_days)).isoformat()

    with db.connect() as conn:
        conn.execute(
            "INSERT INTO auth_sessions (token, user_id, expires_at) VALUES (?, ?, ?)",
            (token, user_id, expires_at),
        )

    logger.debug("auth_sessions.created", user_id=user_id, ttl_days=ttl_days)
    return token


def get_session_user(db: Database, token: str, now: datetime | None = None) -> str | None:
    """Resolve a token to its user ID.

    Returns:
        user_id, or None when the token is unknown or expired
    """
    now = now or datetime.now(timezone.utc)
    with db.connect() as conn:
        row = conn.execute(
            "SELECT user_id, expires_at FROM auth_sessions WHERE token = ?", (token,)
        ).fetchone()

    if row is None:
        return None

    if datetime.fromisoformat(row["expires_at"]) <= now:
        logger.debug("auth_sessions.expired", user_id=row["user_id"])
        return None

    return row["user_id"]


def delete_session(db: Database, token: str) -> bool:
    with db.connect() as conn:
        cursor = conn.execute("DELETE FROM auth_sessions WHERE token = ?", (token,))
    return cursor.rowcount > 0
