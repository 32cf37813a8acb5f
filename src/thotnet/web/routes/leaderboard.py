"""XP leaderboard endpoint."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal

from fastapi import APIRouter, Depends

from thotnet.db import profiles_repository
from thotnet.db.database import Database
from thotnet.web.auth import optional_user
from thotnet.web.dependencies import get_db
from thotnet.web.schemas import Envelope

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])

MAX_LIMIT = 100


@router.get("", response_model=Envelope[dict[str, Any]])
def get_leaderboard(
    period: Literal["all", "week", "month"] = "all",
    limit: int = 50,
    db: Database = Depends(get_db),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    """Top users by XP; the caller's own rank is included when signed in."""
    limit = max(1, min(MAX_LIMIT, limit))
    rows = profiles_repository.get_leaderboard(db, period=period, limit=limit)
    current_rank = profiles_repository.get_user_rank(db, user_id, period) if user_id else None
    return Envelope(
        data={
            "period": period,
            "leaderboard": [asdict(row) for row in rows],
            "currentUserRank": current_rank,
        }
    )
