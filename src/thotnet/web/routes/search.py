"""Article search endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from thotnet.core import news, search
from thotnet.db.articles_repository import SearchFilters
from thotnet.db.database import Database
from thotnet.web.dependencies import get_db
from thotnet.web.schemas import Locale, PagedEnvelope, Pagination

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=PagedEnvelope[list[dict[str, Any]]])
def search_articles(
    q: str = "",
    locale: Locale | None = None,
    category: str | None = None,
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    min_quality: float | None = Query(default=None, alias="minQuality"),
    sort_by: str = Query(default="relevance", alias="sortBy"),
    limit: int = 20,
    offset: int = 0,
    db: Database = Depends(get_db),
) -> PagedEnvelope[list[dict[str, Any]]]:
    """Search titles and content; bounds are checked by the search service."""
    result = search.search(
        db,
        SearchFilters(
            query=q,
            locale=locale,
            category=category,
            date_from=date_from,
            date_to=date_to,
            min_quality=min_quality,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        ),
    )
    page = result.pagination
    return PagedEnvelope(
        data=[news.normalize_article(article, locale or "en") for article in result.articles],
        pagination=Pagination(total=page.total, limit=page.limit, offset=page.offset, has_more=page.has_more),
    )
