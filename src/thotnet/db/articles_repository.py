"""Repository functions for news_articles, bookmarks and search logging."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)

# sortBy value -> ORDER BY clause
SEARCH_ORDERINGS = {
    "relevance": "quality_score DESC, published_at DESC",
    "date": "published_at DESC",
    "quality": "quality_score DESC",
}


@dataclass
class ArticleRecord:
    """News article row with both locales."""

    id: str
    title_en: str
    title_es: str
    summary_en: str
    summary_es: str
    content_en: str
    content_es: str
    category: str
    tags: list[str]
    source_url: str | None
    image_url: str | None
    quality_score: float
    views: int
    published_at: str


@dataclass
class SearchFilters:
    """Validated search parameters for search_articles."""

    query: str
    locale: str | None = None
    category: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    min_quality: float | None = None
    sort_by: str = "relevance"
    limit: int = 20
    offset: int = 0


def insert_article(
    db: Database,
    title_en: str,
    title_es: str = "",
    summary_en: str = "",
    summary_es: str = "",
    content_en: str = "",
    content_es: str = "",
    category: str = "general",
    tags: list[str] | None = None,
    source_url: str | None = None,
    image_url: str | None = None,
    quality_score: float = 0.0,
    published_at: str | None = None,
) -> str:
    """Insert a news article.

    Returns:
        New article ID
    """
    article_id = new_id()
    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO news_articles (
                id, title_en, title_es, summary_en, summary_es, content_en, content_es,
                category, tags, source_url, image_url, quality_score, published_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                article_id,
                title_en,
                title_es,
                summary_en,
                summary_es,
                content_en,
                content_es,
                category,
                json.dumps(tags or []),
                source_url,
                image_url,
                quality_score,
                published_at or utc_now(),
            ),
        )

    logger.debug("news_articles.inserted", article_id=article_id)
    return article_id


def get_article(db: Database, article_id: str) -> ArticleRecord | None:
    with db.connect() as conn:
        row = conn.execute("SELECT * FROM news_articles WHERE id = ?", (article_id,)).fetchone()
    return _row_to_record(row) if row else None


def get_articles_by_ids(db: Database, article_ids: list[str]) -> list[ArticleRecord]:
    if not article_ids:
        return []
    placeholders = ", ".join("?" for _ in article_ids)
    with db.connect() as conn:
        rows = conn.execute(
            f"SELECT * FROM news_articles WHERE id IN ({placeholders})", article_ids
        ).fetchall()
    return [_row_to_record(row) for row in rows]


def list_articles(
    db: Database,
    category: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[ArticleRecord], int]:
    """Articles newest first, optionally filtered by category.

    Returns:
        (page of articles, total matching count)
    """
    where = ""
    params: list[object] = []
    if category:
        where = "WHERE category = ?"
        params.append(category)

    with db.connect() as conn:
        total = conn.execute(f"SELECT COUNT(*) FROM news_articles {where}", params).fetchone()[0]
        rows = conn.execute(
            f"""
            SELECT * FROM news_articles {where}
            ORDER BY published_at DESC
            LIMIT ? OFFSET ?
            """,
            (*params, limit, offset),
        ).fetchall()

    return [_row_to_record(row) for row in rows], total


def list_articles_in_categories(db: Database, categories: list[str], limit: int = 20) -> list[ArticleRecord]:
    """Newest articles in any of the given categories."""
    if not categories:
        return []
    placeholders = ", ".join("?" for _ in categories)
    with db.connect() as conn:
        rows = conn.execute(
            f"""
            SELECT * FROM news_articles WHERE category IN ({placeholders})
            ORDER BY published_at DESC
            LIMIT ?
            """,
            (*categories, limit),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def list_trending_articles(db: Database, limit: int, days: int = 7) -> list[ArticleRecord]:
    """Most viewed recent articles, falling back to all time when the window is empty."""
    since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT * FROM news_articles WHERE published_at >= ?
            ORDER BY views DESC, quality_score DESC
            LIMIT ?
            """,
            (since, limit),
        ).fetchall()
        if not rows:
            rows = conn.execute(
                """
                SELECT * FROM news_articles
                ORDER BY views DESC, quality_score DESC, published_at DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()

    return [_row_to_record(row) for row in rows]


def increment_views(db: Database, article_id: str) -> None:
    with db.connect() as conn:
        conn.execute("UPDATE news_articles SET views = views + 1 WHERE id = ?", (article_id,))


def get_stats(db: Database) -> dict:
    """Aggregate article statistics.

    Returns:
        Dict with total, last-24h count, average quality (percent of the
        last 100 articles), unique source domains and per-category counts
    """
    now = datetime.now(timezone.utc)
    window_start = (now - timedelta(hours=24)).isoformat()

    with db.connect() as conn:
        total = conn.execute("SELECT COUNT(*) FROM news_articles").fetchone()[0]
        today = conn.execute(
            "SELECT COUNT(*) FROM news_articles WHERE published_at >= ? AND published_at <= ?",
            (window_start, now.isoformat()),
        ).fetchone()[0]
        avg_quality = conn.execute(
            """
            SELECT AVG(quality_score) FROM (
                SELECT quality_score FROM news_articles ORDER BY published_at DESC LIMIT 100
            )
            """
        ).fetchone()[0]
        sources = conn.execute(
            "SELECT source_url FROM news_articles WHERE source_url IS NOT NULL LIMIT 1000"
        ).fetchall()
        categories = conn.execute(
            "SELECT category, COUNT(*) AS n FROM news_articles GROUP BY category ORDER BY n DESC"
        ).fetchall()

    domains = {urlparse(row["source_url"]).netloc for row in sources if row["source_url"]}
    return {
        "total": total,
        "today": today,
        "avg_quality_score": round(avg_quality * 100) if avg_quality is not None else 0,
        "sources": len(domains),
        "categories": {row["category"]: row["n"] for row in categories},
    }


def search_articles(db: Database, filters: SearchFilters) -> tuple[list[ArticleRecord], int]:
    """Case-insensitive substring search over title and content columns.

    With a locale only that locale's columns are searched, otherwise both.

    Returns:
        (page of articles, total matching count)
    """
    if filters.locale in ("en", "es"):
        columns = [f"title_{filters.locale}", f"content_{filters.locale}"]
    else:
        columns = ["title_en", "title_es", "content_en", "content_es"]

    pattern = f"%{_escape_like(filters.query.casefold())}%"
    where = ["(" + " OR ".join(f"CASEFOLD({c}) LIKE ? ESCAPE '\\'" for c in columns) + ")"]
    params: list[object] = [pattern] * len(columns)

    if filters.category:
        where.append("category = ?")
        params.append(filters.category)
    if filters.date_from:
        where.append("published_at >= ?")
        params.append(filters.date_from)
    if filters.date_to:
        where.append("published_at <= ?")
        params.append(filters.date_to)
    if filters.min_quality is not None:
        where.append("quality_score >= ?")
        params.append(filters.min_quality)

    clause = " AND ".join(where)
    order_by = SEARCH_ORDERINGS.get(filters.sort_by, SEARCH_ORDERINGS["relevance"])

    with db.connect() as conn:
        total = conn.execute(f"SELECT COUNT(*) FROM news_articles WHERE {clause}", params).fetchone()[0]
        rows = conn.execute(
            f"""
            SELECT * FROM news_articles WHERE {clause}
            ORDER BY {order_by}
            LIMIT ? OFFSET ?
            """,
            (*params, filters.limit, filters.offset),
        ).fetchall()

    return [_row_to_record(row) for row in rows], total


def log_search_query(
    db: Database,
    query: str,
    locale: str,
    category: str | None,
    results_count: int,
) -> None:
    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO search_queries (id, query, locale, category, results_count, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (new_id(), query, locale, category, results_count, utc_now()),
        )


# =============================================================================
# Bookmarks
# =============================================================================


def add_bookmark(db: Database, user_id: str, article_id: str) -> bool:
    """Bookmark an article.

    Returns:
        True if created, False if it already existed
    """
    with db.connect() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO user_bookmarks (id, user_id, article_id, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (new_id(), user_id, article_id, utc_now()),
        )
    return cursor.rowcount > 0


def remove_bookmark(db: Database, user_id: str, article_id: str) -> bool:
    with db.connect() as conn:
        cursor = conn.execute(
            "DELETE FROM user_bookmarks WHERE user_id = ? AND article_id = ?",
            (user_id, article_id),
        )
    return cursor.rowcount > 0


def list_bookmarks(db: Database, user_id: str) -> list[tuple[ArticleRecord, str]]:
    """Bookmarked articles with the bookmark timestamp, newest first."""
    with db.connect() as conn:
        rows = conn.execute(
            """
            SELECT a.*, b.created_at AS bookmarked_at
            FROM user_bookmarks b
            JOIN news_articles a ON a.id = b.article_id
            WHERE b.user_id = ?
            ORDER BY b.created_at DESC
            """,
            (user_id,),
        ).fetchall()

    return [(_row_to_record(row), row["bookmarked_at"]) for row in rows]


def count_bookmarks(db: Database, user_id: str) -> int:
    with db.connect() as conn:
        return conn.execute(
            "SELECT COUNT(*) FROM user_bookmarks WHERE user_id = ?", (user_id,)
        ).fetchone()[0]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_record(row: sqlite3.Row) -> ArticleRecord:
    return ArticleRecord(
        id=row["id"],
        title_en=row["title_en"],
        title_es=row["title_es"],
        summary_en=row["summary_en"],
        summary_es=row["summary_es"],
        content_en=row["content_en"],
        content_es=row["content_es"],
        category=row["category"],
        tags=json.loads(row["tags"]) if row["tags"] else [],
        source_url=row["source_url"],
        image_url=row["image_url"],
        quality_score=row["quality_score"],
        views=row["views"],
        published_at=row["published_at"],
    )
