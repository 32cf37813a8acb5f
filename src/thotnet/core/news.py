"""News article presentation and reader actions (read, bookmark)."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from thotnet.core import badge_awards, gamification, recommender
from thotnet.core.gamification import XPAwardResult
from thotnet.db import articles_repository
from thotnet.db.articles_repository import ArticleRecord
from thotnet.db.badges_repository import BadgeRecord
from thotnet.db.database import Database
from thotnet.errors import NotFound
from thotnet.events.bus import EventBus
from thotnet.utils.text_utils import localized

logger = structlog.get_logger(__name__)


@dataclass
class ReaderActionResult:
    """XP and badges earned by a read or bookmark."""

    xp: XPAwardResult | None = None
    badges: list[BadgeRecord] = field(default_factory=list)
    created: bool = True


def normalize_article(article: ArticleRecord, locale: str = "en", include_content: bool = False) -> dict:
    """Localized article dict; content only for the detail view."""
    data = {
        "id": article.id,
        "title": localized(article.title_en, article.title_es, locale),
        "summary": localized(article.summary_en, article.summary_es, locale),
        "category": article.category,
        "tags": article.tags,
        "source_url": article.source_url,
        "image_url": article.image_url,
        "quality_score": article.quality_score,
        "views": article.views,
        "published_at": article.published_at,
        "locale": locale,
    }
    if include_content:
        data["content"] = localized(article.content_en, article.content_es, locale)
    return data


def _require_article(db: Database, article_id: str) -> ArticleRecord:
    article = articles_repository.get_article(db, article_id)
    if article is None:
        raise NotFound(f"Article not found: {article_id}")
    return article


def mark_read(db: Database, bus: EventBus, user_id: str, article_id: str) -> ReaderActionResult:
    """Award article_read XP once per article and run reading badge checks.

    Raises:
        NotFound: Unknown article
    """
    _require_article(db, article_id)
    xp = gamification.award_xp_once(db, bus, user_id, "article_read", reference_id=article_id)
    if xp is None:
        return ReaderActionResult(created=False)

    recommender.track_interaction(db, user_id, "article", article_id, "complete")
    badges = badge_awards.check_and_award_badges(db, bus, user_id, "article_read")
    return ReaderActionResult(xp=xp, badges=badges)


def add_bookmark(db: Database, bus: EventBus, user_id: str, article_id: str) -> ReaderActionResult:
    """Bookmark an article; the first bookmark of an article earns XP.

    Raises:
        NotFound: Unknown article
    """
    _require_article(db, article_id)
    if not articles_repository.add_bookmark(db, user_id, article_id):
        return ReaderActionResult(created=False)

    logger.info("bookmark_added", user_id=user_id, article_id=article_id)
    recommender.track_interaction(db, user_id, "article", article_id, "bookmark")
    xp = gamification.award_xp_once(db, bus, user_id, "article_bookmark", reference_id=article_id)
    badges = badge_awards.check_and_award_badges(db, bus, user_id, "bookmark_count")
    return ReaderActionResult(xp=xp, badges=badges)


def remove_bookmark(db: Database, user_id: str, article_id: str) -> None:
    """Raises NotFound when the article isn't bookmarked."""
    if not articles_repository.remove_bookmark(db, user_id, article_id):
        raise NotFound("Bookmark not found")
    logger.info("bookmark_removed", user_id=user_id, article_id=article_id)
