"""Repository functions for analytics_events and search_queries reporting."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class EventRecord:
    id: str
    event_name: str
    user_id: str | None
    session_id: str | None
    properties: dict
    created_at: str


def insert_event(
    db: Database,
    event_name: str,
    user_id: str | None = None,
    session_id: str | None = None,
    properties: dict | None = None,
) -> str:
    event_id = new_id()
    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO analytics_events (id, event_name, user_id, session_id, properties, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (event_id, event_name, user_id, session_id, json.dumps(properties or {}), utc_now()),
        )

    logger.debug("analytics_events.inserted", event_name=event_name)
    return event_id


def summarize_events(db: Database, since: str) -> dict:
    """Totals for events created at or after `since`.

    Returns:
        Dict with total, by_event, by_day and unique_users
    """
    with db.connect() as conn:
        total = conn.execute(
            "SELECT COUNT(*) FROM analytics_events WHERE created_at >= ?", (since,)
        ).fetchone()[0]
        by_event = conn.execute(
            """
            SELECT event_name, COUNT(*) AS n FROM analytics_events
            WHERE created_at >= ?
            GROUP BY event_name ORDER BY n DESC
            """,
            (since,),
        ).fetchall()
        by_day = conn.execute(
            """
            SELECT substr(created_at, 1, 10) AS day, COUNT(*) AS n FROM analytics_events
            WHERE created_at >= ?
            GROUP BY day ORDER BY day
            """,
            (since,),
        ).fetchall()
        unique_users = conn.execute(
            """
            SELECT COUNT(DISTINCT user_id) FROM analytics_events
            WHERE created_at >= ? AND user_id IS NOT NULL
            """,
            (since,),
        ).fetchone()[0]

    return {
        "total": total,
        "by_event": {row["event_name"]: row["n"] for row in by_event},
        "by_day": {row["day"]: row["n"] for row in by_day},
        "unique_users": unique_users,
    }


def top_search_queries(db: Database, since: str, limit: int = 10) -> list[dict]:
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT CASEFOLD(query) AS query, COUNT(*) AS n, AVG(results_count) AS avg_results
            FROM search_queries
            WHERE created_at >= ?
            GROUP BY CASEFOLD(query)
            ORDER BY n DESC
            LIMIT ?
            """,
            (since, limit),
        ).fetchall()

    return [
        {"query": row["query"], "count": row["n"], "avg_results": round(row["avg_results"] or 0, 1)}
        for row in rows
    ]


def list_events(db: Database, since: str, limit: int = 500) -> list[EventRecord]:
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT * FROM analytics_events
            WHERE created_at >= ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (since, limit),
        ).fetchall()

    return [_row_to_event(row) for row in rows]


def list_search_queries(db: Database, since: str, limit: int = 500) -> list[sqlite3.Row]:
    with db.connect() as conn:
        return conn.execute(
            """
            SELECT * FROM search_queries
            WHERE created_at >= ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (since, limit),
        ).fetchall()


def _row_to_event(row: sqlite3.Row) -> EventRecord:
    return EventRecord(
        id=row["id"],
        event_name=row["event_name"],
        user_id=row["user_id"],
        session_id=row["session_id"],
        properties=json.loads(row["properties"]) if row["properties"] else {},
        created_at=row["created_at"],
    )
