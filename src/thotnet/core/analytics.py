"""Product analytics: event recording, dashboard summary and CSV export.

Domain events published on the bus are mirrored into analytics_events by
the recorders registered in register_event_recorders, so the dashboard
sees XP, badge, enrollment and generation activity without the routes
having to log it twice.
"""

from __future__ import annotations

import re
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import structlog

from thotnet.config.app_config import SiteConfig
from thotnet.db import analytics_repository
from thotnet.db.database import Database
from thotnet.errors import AuthenticationRequired, ValidationFailed
from thotnet.events.bus import EventBus
from thotnet.events.types import ALL_EVENT_TYPES

logger = structlog.get_logger(__name__)

DEFAULT_DAYS = 7
MAX_DAYS = 365
MAX_EVENT_NAME_LENGTH = 100
EXPORT_ROW_LIMIT = 500

CSV_HEADERS = (
    "dataset",
    "metric",
    "value",
    "user_id",
    "event_name",
    "query",
    "locale",
    "results_count",
    "created_at",
)

_NEEDS_QUOTING = re.compile(r'[",\n\r]')
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


# =============================================================================
# Access
# =============================================================================


def check_access(site: SiteConfig, token: str | None, user_id: str | None) -> None:
    """Allow the public flag, a matching analytics token, or any signed-in user.

    Raises:
        AuthenticationRequired: None of the above
    """
    if site.analytics_public:
        return

    expected = site.get_analytics_token()
    if expected and token == expected:
        return

    if user_id is not None:
        return

    raise AuthenticationRequired()


# =============================================================================
# Recording
# =============================================================================


def record_event(
    db: Database,
    event_name: str,
    user_id: str | None = None,
    session_id: str | None = None,
    properties: dict[str, Any] | None = None,
) -> str:
    """Store one analytics event.

    Raises:
        ValidationFailed: Empty or overlong event name
    """
    event_name = event_name.strip()
    if not event_name or len(event_name) > MAX_EVENT_NAME_LENGTH:
        raise ValidationFailed(
            "Invalid event",
            details=[{"field": "event", "message": f"must be 1 to {MAX_EVENT_NAME_LENGTH} characters"}],
        )
    return analytics_repository.insert_event(db, event_name, user_id, session_id, properties)


def event_name_for(event_type: type) -> str:
    """CourseEnrolled -> "course_enrolled"."""
    return _CAMEL_BOUNDARY.sub("_", event_type.__name__).lower()


def register_event_recorders(bus: EventBus, db: Database) -> None:
    """Mirror every domain event into analytics_events."""

    def record(event: Any) -> None:
        properties = asdict(event)
        user_id = properties.pop("user_id", None)
        properties.pop("occurred_at", None)
        analytics_repository.insert_event(db, event_name_for(type(event)), user_id=user_id, properties=properties)

    for event_type in ALL_EVENT_TYPES:
        bus.subscribe(event_type, record)


# =============================================================================
# Reporting
# =============================================================================


def _since(days: int, now: datetime | None = None) -> str:
    if not 1 <= days <= MAX_DAYS:
        raise ValidationFailed(
            "Invalid days",
            details=[{"field": "days", "message": f"must be between 1 and {MAX_DAYS}"}],
        )
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(days=days)).isoformat()


def get_dashboard(db: Database, days: int = DEFAULT_DAYS, now: datetime | None = None) -> dict[str, Any]:
    """Totals, per-event and per-day counts, unique users and top searches."""
    since = _since(days, now)
    summary = analytics_repository.summarize_events(db, since)
    return {
        "days": days,
        "since": since,
        "total_events": summary["total"],
        "unique_users": summary["unique_users"],
        "events_by_name": summary["by_event"],
        "events_by_day": summary["by_day"],
        "top_searches": analytics_repository.top_search_queries(db, since),
    }


def escape_csv(value: Any) -> str:
    """Quote a CSV field containing a comma, quote or newline; double inner quotes."""
    if value is None:
        return ""
    text = str(value)
    if _NEEDS_QUOTING.search(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def build_csv(rows: Iterable[dict[str, Any]], headers: Iterable[str] = CSV_HEADERS) -> str:
    headers = list(headers)
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(escape_csv(row.get(header)) for header in headers))
    return "\n".join(lines) + "\n"


def export_csv(db: Database, days: int = DEFAULT_DAYS, now: datetime | None = None) -> str:
    """Overview metrics, recent events and recent search queries as one CSV."""
    dashboard = get_dashboard(db, days, now)
    since = dashboard["since"]

    rows: list[dict[str, Any]] = [
        {"dataset": "overview", "metric": "total_events", "value": dashboard["total_events"]},
        {"dataset": "overview", "metric": "unique_users", "value": dashboard["unique_users"]},
    ]
    rows.extend(
        {"dataset": "events_by_name", "metric": name, "value": count}
        for name, count in dashboard["events_by_name"].items()
    )
    rows.extend(
        {"dataset": "events_by_day", "metric": day, "value": count}
        for day, count in dashboard["events_by_day"].items()
    )
    rows.extend(
        {
            "dataset": "events",
            "metric": event.id,
            "user_id": event.user_id,
            "event_name": event.event_name,
            "created_at": event.created_at,
        }
        for event in analytics_repository.list_events(db, since, limit=EXPORT_ROW_LIMIT)
    )
    rows.extend(
        {
            "dataset": "search_queries",
            "metric": row["id"],
            "query": row["query"],
            "locale": row["locale"],
            "results_count": row["results_count"],
            "created_at": row["created_at"],
        }
        for row in analytics_repository.list_search_queries(db, since, limit=EXPORT_ROW_LIMIT)
    )

    logger.info("analytics_exported", days=days, rows=len(rows))
    return build_csv(rows)
