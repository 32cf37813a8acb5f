"""Full-text article search with filters, sorting and pagination."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db import articles_repository
from thotnet.db.articles_repository import ArticleRecord, SearchFilters
from thotnet.db.database import Database
from thotnet.errors import ValidationFailed

logger = structlog.get_logger(__name__)

MAX_QUERY_LENGTH = 200
MAX_LIMIT = 50
SORT_OPTIONS = tuple(articles_repository.SEARCH_ORDERINGS)


@dataclass
class Pagination:
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def to_dict(self) -> dict:
        return {"total": self.total, "limit": self.limit, "offset": self.offset, "hasMore": self.has_more}


@dataclass
class SearchResult:
    articles: list[ArticleRecord]
    pagination: Pagination
    filters: SearchFilters


def validate_filters(filters: SearchFilters) -> SearchFilters:
    """Check bounds the HTTP layer may not have enforced.

    Raises:
        ValidationFailed: With one detail entry per bad field
    """
    details = []
    query = filters.query.strip()
    if not 1 <= len(query) <= MAX_QUERY_LENGTH:
        details.append({"field": "q", "message": f"must be 1 to {MAX_QUERY_LENGTH} characters"})
    if not 1 <= filters.limit <= MAX_LIMIT:
        details.append({"field": "limit", "message": f"must be between 1 and {MAX_LIMIT}"})
    if filters.offset < 0:
        details.append({"field": "offset", "message": "must be 0 or greater"})
    if filters.sort_by not in SORT_OPTIONS:
        details.append({"field": "sortBy", "message": f"must be one of {', '.join(SORT_OPTIONS)}"})
    if filters.min_quality is not None and not 0 <= filters.min_quality <= 1:
        details.append({"field": "minQuality", "message": "must be between 0 and 1"})

    if details:
        raise ValidationFailed("Invalid search parameters", details=details)

    filters.query = query
    return filters


def search(db: Database, filters: SearchFilters) -> SearchResult:
    """Run a search and log the query.

    Query logging failures are logged as warnings and never fail the search.
    """
    filters = validate_filters(filters)
    articles, total = articles_repository.search_articles(db, filters)

    try:
        articles_repository.log_search_query(db, filters.query, filters.locale or "", filters.category, len(articles))
    except sqlite3.Error as exc:
        logger.warning("search_query_log_failed", error=str(exc))

    logger.info("search_completed", query=filters.query, total=total, returned=len(articles))
    return SearchResult(
        articles=articles,
        pagination=Pagination(total=total, limit=filters.limit, offset=filters.offset),
        filters=filters,
    )
