"""Product analytics endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, Response, status

from thotnet.core import analytics
from thotnet.web.auth import optional_user
from thotnet.web.dependencies import get_services
from thotnet.web.schemas import AnalyticsEventCreate, Envelope
from thotnet.web.services import Services

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.post("/events", response_model=Envelope[dict[str, Any]], status_code=status.HTTP_201_CREATED)
def record_event(
    body: AnalyticsEventCreate,
    services: Services = Depends(get_services),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    event_id = analytics.record_event(services.db, body.event, user_id, body.session_id, body.properties)
    return Envelope(data={"id": event_id})


@router.get("", response_model=Envelope[dict[str, Any]])
def get_dashboard(
    days: int = analytics.DEFAULT_DAYS,
    token: str | None = None,
    x_analytics_token: str | None = Header(default=None),
    services: Services = Depends(get_services),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    """Dashboard summary. Needs the public flag, the analytics token or a signed-in user."""
    analytics.check_access(services.config.site, x_analytics_token or token, user_id)
    return Envelope(data=analytics.get_dashboard(services.db, days))


@router.get("/export")
def export_csv(
    days: int = analytics.DEFAULT_DAYS,
    token: str | None = None,
    x_analytics_token: str | None = Header(default=None),
    services: Services = Depends(get_services),
    user_id: str | None = Depends(optional_user),
) -> Response:
    analytics.check_access(services.config.site, x_analytics_token or token, user_id)
    body = analytics.export_csv(services.db, days)
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="thotnet-analytics-{days}d.csv"'},
    )
