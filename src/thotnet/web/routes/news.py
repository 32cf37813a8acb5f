"""News article and bookmark endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from thotnet.core import news, recommender
from thotnet.db import articles_repository
from thotnet.db.database import Database
from thotnet.errors import NotFound, ValidationFailed
from thotnet.events.bus import EventBus
from thotnet.web.auth import current_user, optional_user
from thotnet.web.dependencies import get_bus, get_db
from thotnet.web.schemas import BookmarkRequest, Envelope, Locale, PagedEnvelope, Pagination
from thotnet.web.serializers import badge_dict, xp_award_dict

router = APIRouter(prefix="/api/news", tags=["news"])
bookmarks_router = APIRouter(prefix="/api/bookmarks", tags=["bookmarks"])


# =============================================================================
# ARTICLES
# =============================================================================


@router.get("", response_model=PagedEnvelope[list[dict[str, Any]]])
def list_news(
    locale: Locale = "en",
    category: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
) -> PagedEnvelope[list[dict[str, Any]]]:
    articles, total = articles_repository.list_articles(db, category=category, limit=limit, offset=offset)
    return PagedEnvelope(
        data=[news.normalize_article(article, locale) for article in articles],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )


@router.get("/stats", response_model=Envelope[dict[str, Any]])
def news_stats(db: Database = Depends(get_db)) -> Envelope[dict[str, Any]]:
    return Envelope(data=articles_repository.get_stats(db))


@router.get("/{article_id}", response_model=Envelope[dict[str, Any]])
def get_article(
    article_id: str,
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str | None = Depends(optional_user),
) -> Envelope[dict[str, Any]]:
    """Full article; counts as a view."""
    article = articles_repository.get_article(db, article_id)
    if article is None:
        raise NotFound(f"Article not found: {article_id}")

    articles_repository.increment_views(db, article_id)
    if user_id is not None:
        recommender.track_interaction(db, user_id, "article", article_id, "view")

    data = news.normalize_article(article, locale, include_content=True)
    data["views"] = article.views + 1
    return Envelope(data=data)


@router.post("/{article_id}/read", response_model=Envelope[dict[str, Any]])
def mark_read(
    article_id: str,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    result = news.mark_read(db, bus, user_id, article_id)
    return Envelope(
        data={
            "article_id": article_id,
            "first_read": result.created,
            "xp": xp_award_dict(result.xp),
            "badges": [badge_dict(badge) for badge in result.badges],
        }
    )


# =============================================================================
# BOOKMARKS
# =============================================================================


@bookmarks_router.get("", response_model=Envelope[list[dict[str, Any]]])
def list_bookmarks(
    locale: Locale = "en",
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[list[dict[str, Any]]]:
    bookmarks = articles_repository.list_bookmarks(db, user_id)
    return Envelope(
        data=[
            {**news.normalize_article(article, locale), "bookmarked_at": bookmarked_at}
            for article, bookmarked_at in bookmarks
        ]
    )


@bookmarks_router.post("", response_model=Envelope[dict[str, Any]], status_code=status.HTTP_201_CREATED)
def add_bookmark(
    body: BookmarkRequest,
    db: Database = Depends(get_db),
    bus: EventBus = Depends(get_bus),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Bookmark an article; bookmarking it again is a no-op."""
    result = news.add_bookmark(db, bus, user_id, body.article_id)
    return Envelope(
        data={
            "article_id": body.article_id,
            "created": result.created,
            "xp": xp_award_dict(result.xp),
            "badges": [badge_dict(badge) for badge in result.badges],
        }
    )


@bookmarks_router.delete("", response_model=Envelope[dict[str, Any]])
def remove_bookmark(
    article_id: str | None = Query(default=None, alias="articleId"),
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    if not article_id:
        raise ValidationFailed(
            "Article ID is required",
            details=[{"field": "articleId", "message": "required"}],
        )
    news.remove_bookmark(db, user_id, article_id)
    return Envelope(data={"article_id": article_id, "bookmarked": False})
