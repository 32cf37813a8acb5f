"""Course enrollment endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from thotnet.core import enrollment
from thotnet.db.database import Database
from thotnet.errors import ValidationFailed
from thotnet.events.bus import EventBus
from thotnet.web.auth import current_user
from thotnet.web.dependencies import get_bus, get_db
from thotnet.web.schemas import EnrollRequest, Envelope

router = APIRouter(prefix="/api/courses/enroll", tags=["enrollment"])


@router.post("", response_model=Envelope[dict[str, Any]], status_code=status.HTTP_201_CREATED)
def enroll(
    body: EnrollRequest,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Enroll the caller in a course."""
    record = enrollment.enroll(db, bus, user_id, body.course_id)
    return Envelope(data=asdict(record))


@router.delete("", response_model=Envelope[dict[str, Any]])
def unenroll(
    course_id: str | None = Query(default=None, alias="courseId"),
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    if not course_id:
        raise ValidationFailed(
            "Course ID is required",
            details=[{"field": "courseId", "message": "required"}],
        )
    enrollment.unenroll(db, user_id, course_id)
    return Envelope(data={"course_id": course_id, "enrolled": False})
