"""Personalized recommendation and interaction tracking endpoints."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, status

from thotnet.core import news, recommender
from thotnet.core.course_normalizer import normalize_course
from thotnet.core.recommender import Recommendation
from thotnet.db.articles_repository import ArticleRecord
from thotnet.db.database import Database
from thotnet.web.auth import current_user
from thotnet.web.dependencies import get_db
from thotnet.web.schemas import Envelope, InteractionCreate, Locale

router = APIRouter(tags=["recommendations"])


def _recommendation_dict(rec: Recommendation, locale: str) -> dict[str, Any]:
    if isinstance(rec.content, ArticleRecord):
        content = news.normalize_article(rec.content, locale)
    else:
        content = normalize_course(rec.content, locale=locale)
    return {
        "content_id": rec.content_id,
        "score": round(rec.score, 4),
        "reasons": rec.reasons,
        "explanation": rec.explanation,
        "content": content,
    }


@router.get("/api/recommendations", response_model=Envelope[list[dict[str, Any]]])
def get_recommendations(
    content_type: Literal["article", "course"] = Query(default="article", alias="type"),
    limit: int = Query(default=10, ge=1, le=50),
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[list[dict[str, Any]]]:
    recommendations = recommender.get_recommendations(db, user_id, content_type, limit=limit)
    return Envelope(data=[_recommendation_dict(rec, locale) for rec in recommendations])


@router.post("/api/interactions", response_model=Envelope[dict[str, Any]], status_code=status.HTTP_201_CREATED)
def track_interaction(
    body: InteractionCreate,
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    interaction_id = recommender.track_interaction(
        db, user_id, body.content_type, body.content_id, body.interaction_type
    )
    return Envelope(
        data={
            "id": interaction_id,
            "strength": recommender.INTERACTION_STRENGTHS[body.interaction_type],
        }
    )
