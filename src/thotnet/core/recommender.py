"""Personalized recommendations for articles and courses.

Interactions (view, search, like, bookmark, complete) are logged with a
strength. A user's interest profile weights each interaction by recency
and aggregates it onto the content's category and tags. Recommendations
blend three sources:

- content-based (0.6): items in the user's top categories, scored by
  category and tag affinity
- collaborative (0.3): items that users sharing content with this user
  liked, bookmarked or completed
- trending (0.1): most viewed items

Users without interactions get trending content.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Union

import structlog

from thotnet.db import articles_repository, courses_repository, interests_repository
from thotnet.db.articles_repository import ArticleRecord
from thotnet.db.courses_repository import CourseRecord
from thotnet.db.database import Database
from thotnet.errors import ValidationFailed

logger = structlog.get_logger(__name__)

ContentType = Literal["article", "course"]
Content = Union[ArticleRecord, CourseRecord]

CONTENT_TYPES = ("article", "course")

INTERACTION_STRENGTHS = {
    "view": 1,
    "search": 2,
    "like": 3,
    "bookmark": 4,
    "complete": 5,
}

PROFILE_INTERACTIONS = 100
RECENCY_DECAY_DAYS = 30
TOP_CATEGORIES = 5
TOP_TOPICS = 10
CONTENT_CATEGORIES = 3
CANDIDATE_LIMIT = 20
TAG_WEIGHT = 0.5
COLLABORATIVE_MIN_STRENGTH = 3

SOURCE_WEIGHTS = {
    "content": 0.6,
    "collaborative": 0.3,
    "trending": 0.1,
}

REASON_TRENDING = "Trending now"
REASON_COLLABORATIVE = "Popular with users like you"


@dataclass
class InterestProfile:
    """Aggregated interests of one user."""

    user_id: str
    interaction_count: int
    top_categories: list[tuple[str, float]] = field(default_factory=list)
    top_topics: list[tuple[str, float]] = field(default_factory=list)

    def category_score(self, category: str) -> float | None:
        return dict(self.top_categories).get(category)

    def topic_score(self, topic: str) -> float | None:
        return dict(self.top_topics).get(topic)


@dataclass
class Recommendation:
    content_id: str
    score: float
    reasons: list[str]
    content: Content

    @property
    def explanation(self) -> str:
        return explain(self.reasons)


# =============================================================================
# Helpers
# =============================================================================


def _check_content_type(content_type: str) -> None:
    if content_type not in CONTENT_TYPES:
        raise ValidationFailed(f"Unknown content type: {content_type}")


def _tags(content: Content) -> list[str]:
    if isinstance(content, CourseRecord):
        return content.topics
    return content.tags


def _trending_score(content: Content) -> float:
    if isinstance(content, CourseRecord):
        return float(content.view_count)
    return float(content.views)


def _get_by_ids(db: Database, content_type: str, ids: list[str]) -> list[Content]:
    if content_type == "article":
        return articles_repository.get_articles_by_ids(db, ids)
    return courses_repository.get_courses_by_ids(db, ids)


def _age_days(created_at: str, now: datetime) -> float:
    created = datetime.fromisoformat(created_at)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return max((now - created).total_seconds(), 0.0) / 86400


def recency_weight(age_days: float) -> float:
    """exp(-age / 30): 1.0 today, about 0.37 after a month."""
    return math.exp(-age_days / RECENCY_DECAY_DAYS)


def explain(reasons: list[str]) -> str:
    """Join reasons into one sentence ("A", "A and B", "A, B, and C")."""
    if not reasons:
        return "Recommended for you"
    if len(reasons) == 1:
        return reasons[0]
    if len(reasons) == 2:
        return f"{reasons[0]} and {reasons[1]}"
    return f"{', '.join(reasons[:-1])}, and {reasons[-1]}"


# =============================================================================
# Tracking and profile
# =============================================================================


def track_interaction(
    db: Database,
    user_id: str,
    content_type: str,
    content_id: str,
    interaction_type: str,
) -> str:
    """Log an interaction with its strength.

    Raises:
        ValidationFailed: Unknown content or interaction type
    """
    _check_content_type(content_type)
    strength = INTERACTION_STRENGTHS.get(interaction_type)
    if strength is None:
        raise ValidationFailed(f"Unknown interaction type: {interaction_type}")

    interaction_id = interests_repository.insert_interaction(
        db, user_id, content_type, content_id, interaction_type, strength
    )
    logger.info(
        "interaction_tracked",
        user_id=user_id,
        content_type=content_type,
        interaction_type=interaction_type,
    )
    return interaction_id


def get_user_profile(db: Database, user_id: str, now: datetime | None = None) -> InterestProfile:
    """Recency-weighted category and topic scores from the last 100 interactions.

    Interactions whose content no longer exists are ignored.
    """
    now = now or datetime.now(timezone.utc)
    interactions = interests_repository.recent_interactions(db, user_id, limit=PROFILE_INTERACTIONS)

    contents: dict[tuple[str, str], Content] = {}
    for content_type in CONTENT_TYPES:
        ids = sorted({i.content_id for i in interactions if i.content_type == content_type})
        for item in _get_by_ids(db, content_type, ids):
            contents[(content_type, item.id)] = item

    category_scores: dict[str, float] = {}
    topic_scores: dict[str, float] = {}
    for interaction in interactions:
        content = contents.get((interaction.content_type, interaction.content_id))
        if content is None:
            continue

        score = interaction.strength * recency_weight(_age_days(interaction.created_at, now))
        category_scores[content.category] = category_scores.get(content.category, 0.0) + score
        for tag in _tags(content):
            topic_scores[tag] = topic_scores.get(tag, 0.0) + score

    def top(scores: dict[str, float], n: int) -> list[tuple[str, float]]:
        return sorted(scores.items(), key=lambda item: item[1], reverse=True)[:n]

    return InterestProfile(
        user_id=user_id,
        interaction_count=len(interactions),
        top_categories=top(category_scores, TOP_CATEGORIES),
        top_topics=top(topic_scores, TOP_TOPICS),
    )


# =============================================================================
# Sources
# =============================================================================


def content_based(db: Database, profile: InterestProfile, content_type: str) -> list[Recommendation]:
    """Items in the top 3 categories scored by category + 0.5 x tag affinity."""
    categories = [category for category, _ in profile.top_categories[:CONTENT_CATEGORIES]]
    if content_type == "article":
        candidates: list[Content] = articles_repository.list_articles_in_categories(db, categories, CANDIDATE_LIMIT)
    else:
        candidates = courses_repository.list_courses_in_categories(db, categories, CANDIDATE_LIMIT)

    recommendations = []
    for item in candidates:
        reasons = []
        score = 0.0

        category_score = profile.category_score(item.category)
        if category_score is not None:
            score += category_score
            reasons.append(f"Matches your interest in {item.category}")

        for tag in _tags(item):
            topic_score = profile.topic_score(tag)
            if topic_score is not None:
                score += topic_score * TAG_WEIGHT
                reasons.append(f"Related to {tag}")

        if score > 0:
            recommendations.append(Recommendation(item.id, score, reasons, item))

    return recommendations


def collaborative(db: Database, user_id: str, content_type: str) -> list[Recommendation]:
    """Strong interactions (like, bookmark, complete) of users sharing content."""
    similar = interests_repository.similar_user_ids(db, user_id, content_type)
    if not similar:
        return []

    scores = interests_repository.strong_interaction_scores(
        db, similar, content_type, min_strength=COLLABORATIVE_MIN_STRENGTH
    )
    return [
        Recommendation(item.id, float(scores.get(item.id, 0)), [REASON_COLLABORATIVE], item)
        for item in _get_by_ids(db, content_type, list(scores))
    ]


def trending(db: Database, content_type: str, limit: int) -> list[Recommendation]:
    """Most viewed items, scored by view count."""
    if limit <= 0:
        return []
    if content_type == "article":
        items: list[Content] = articles_repository.list_trending_articles(db, limit)
    else:
        items = courses_repository.list_trending_courses(db, limit)
    return [Recommendation(item.id, _trending_score(item), [REASON_TRENDING], item) for item in items]


# =============================================================================
# Blending
# =============================================================================


def get_recommendations(
    db: Database,
    user_id: str,
    content_type: str,
    limit: int = 10,
    exclude_seen: bool = True,
    diversity_factor: float = 0.3,
) -> list[Recommendation]:
    """Blend content-based, collaborative and trending recommendations.

    Args:
        db: Database handle
        user_id: User to recommend for
        content_type: "article" or "course"
        limit: Maximum number of recommendations
        exclude_seen: Drop items the user already interacted with
        diversity_factor: Share of the limit requested from trending

    Returns:
        Recommendations sorted by blended score, highest first

    Raises:
        ValidationFailed: Unknown content type
    """
    _check_content_type(content_type)

    profile = get_user_profile(db, user_id)
    if profile.interaction_count == 0:
        logger.info("recommendations_cold_start", user_id=user_id, content_type=content_type)
        return trending(db, content_type, limit)

    sources = (
        ("content", content_based(db, profile, content_type)),
        ("collaborative", collaborative(db, user_id, content_type)),
        ("trending", trending(db, content_type, math.ceil(limit * diversity_factor))),
    )

    merged: dict[str, Recommendation] = {}
    for source, recommendations in sources:
        weight = SOURCE_WEIGHTS[source]
        for rec in recommendations:
            existing = merged.get(rec.content_id)
            if existing is None:
                merged[rec.content_id] = Recommendation(rec.content_id, rec.score * weight, list(rec.reasons), rec.content)
            else:
                existing.score += rec.score * weight
                existing.reasons.extend(rec.reasons)

    if exclude_seen:
        for content_id in interests_repository.seen_content_ids(db, user_id, content_type):
            merged.pop(content_id, None)

    ranked = sorted(merged.values(), key=lambda rec: rec.score, reverse=True)[:limit]
    for rec in ranked:
        rec.reasons = list(dict.fromkeys(rec.reasons))

    logger.info(
        "recommendations_generated",
        user_id=user_id,
        content_type=content_type,
        count=len(ranked),
    )
    return ranked
