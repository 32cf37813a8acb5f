"""SQLite database connection and schema management.

A Database instance is built once per process (see thotnet.web.dependencies)
and handed to repositories explicitly.
"""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/thotnet.db")


def new_id() -> str:
    """Generate a UUID v4 primary key."""
    return str(uuid.uuid4())


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def casefold(value: object) -> object:
    """Unicode case folding for SQL; SQLite's LOWER() only folds ASCII."""
    return value.casefold() if isinstance(value, str) else value


class Database:
    """Handle on one SQLite database file."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else DEFAULT_DB_PATH

    def init_schema(self) -> None:
        """Create the database file and all tables if they don't exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with self.connect() as conn:
            _create_schema(conn)

        logger.info("database.initialized", path=str(self.path))

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection as context manager.

        Commits on success, rolls back on any exception.

        Yields:
            SQLite connection with row factory set to sqlite3.Row and a
            CASEFOLD() SQL function registered

        Example:
            with db.connect() as conn:
                rows = conn.execute("SELECT * FROM courses").fetchall()
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.create_function("CASEFOLD", 1, casefold, deterministic=True)

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Profiles and sessions
        CREATE TABLE IF NOT EXISTS user_profiles (
            id TEXT PRIMARY KEY,
            display_name TEXT,
            email TEXT,
            avatar_url TEXT,
            locale TEXT NOT NULL DEFAULT 'en' CHECK(locale IN ('en', 'es')),
            total_xp INTEGER NOT NULL DEFAULT 0 CHECK(total_xp >= 0),
            level INTEGER NOT NULL DEFAULT 1 CHECK(level >= 1),
            streak_days INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_at TEXT,
            streak_updated_on TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS auth_sessions (
            token TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            expires_at TEXT NOT NULL
        );

        -- Courses
        CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY,
            title_en TEXT NOT NULL DEFAULT '',
            title_es TEXT NOT NULL DEFAULT '',
            description_en TEXT NOT NULL DEFAULT '',
            description_es TEXT NOT NULL DEFAULT '',
            difficulty TEXT NOT NULL DEFAULT 'beginner'
                CHECK(difficulty IN ('beginner', 'intermediate', 'advanced')),
            duration_minutes INTEGER NOT NULL DEFAULT 0,
            topics TEXT NOT NULL DEFAULT '[]',
            category TEXT NOT NULL DEFAULT 'general',
            status TEXT NOT NULL DEFAULT 'published'
                CHECK(status IN ('draft', 'published', 'archived')),
            ai_generated INTEGER NOT NULL DEFAULT 0,
            generation_prompt TEXT,
            thumbnail_url TEXT,
            enrollment_count INTEGER NOT NULL DEFAULT 0 CHECK(enrollment_count >= 0),
            rating_avg REAL NOT NULL DEFAULT 0,
            view_count INTEGER NOT NULL DEFAULT 0,
            created_by TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS course_modules (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            order_index INTEGER NOT NULL,
            title_en TEXT NOT NULL DEFAULT '',
            title_es TEXT NOT NULL DEFAULT '',
            content_en TEXT NOT NULL DEFAULT '',
            content_es TEXT NOT NULL DEFAULT '',
            type TEXT NOT NULL DEFAULT 'article'
                CHECK(type IN ('video', 'article', 'quiz', 'interactive')),
            estimated_time INTEGER NOT NULL DEFAULT 15,
            resources TEXT NOT NULL DEFAULT '[]',
            UNIQUE(course_id, order_index)
        );

        CREATE TABLE IF NOT EXISTS user_courses (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            relationship_type TEXT NOT NULL CHECK(relationship_type IN ('enrolled', 'created')),
            progress_percentage INTEGER NOT NULL DEFAULT 0
                CHECK(progress_percentage BETWEEN 0 AND 100),
            enrolled_at TEXT NOT NULL,
            completed_at TEXT,
            last_accessed_at TEXT,
            UNIQUE(user_id, course_id, relationship_type)
        );

        CREATE TABLE IF NOT EXISTS user_progress (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            module_id TEXT NOT NULL REFERENCES course_modules(id) ON DELETE CASCADE,
            completed INTEGER NOT NULL DEFAULT 0,
            score INTEGER CHECK(score IS NULL OR score BETWEEN 0 AND 100),
            time_spent INTEGER NOT NULL DEFAULT 0,
            completed_at TEXT,
            updated_at TEXT NOT NULL,
            UNIQUE(user_id, course_id, module_id)
        );

        CREATE TABLE IF NOT EXISTS course_ratings (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            rating INTEGER NOT NULL CHECK(rating BETWEEN 1 AND 5),
            review_en TEXT,
            review_es TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(course_id, user_id)
        );

        -- Gamification
        CREATE TABLE IF NOT EXISTS user_xp_log (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            xp_amount INTEGER NOT NULL CHECK(xp_amount > 0),
            action_type TEXT NOT NULL,
            reference_id TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS badges (
            id TEXT PRIMARY KEY,
            name_en TEXT NOT NULL,
            name_es TEXT NOT NULL,
            description_en TEXT NOT NULL,
            description_es TEXT NOT NULL,
            icon TEXT NOT NULL,
            tier TEXT NOT NULL,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            trigger_type TEXT NOT NULL,
            threshold INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS user_badges (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            badge_id TEXT NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            earned_at TEXT NOT NULL,
            UNIQUE(user_id, badge_id)
        );

        -- News
        CREATE TABLE IF NOT EXISTS news_articles (
            id TEXT PRIMARY KEY,
            title_en TEXT NOT NULL DEFAULT '',
            title_es TEXT NOT NULL DEFAULT '',
            summary_en TEXT NOT NULL DEFAULT '',
            summary_es TEXT NOT NULL DEFAULT '',
            content_en TEXT NOT NULL DEFAULT '',
            content_es TEXT NOT NULL DEFAULT '',
            category TEXT NOT NULL DEFAULT 'general',
            tags TEXT NOT NULL DEFAULT '[]',
            source_url TEXT,
            image_url TEXT,
            quality_score REAL NOT NULL DEFAULT 0,
            views INTEGER NOT NULL DEFAULT 0,
            published_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS user_bookmarks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            article_id TEXT NOT NULL REFERENCES news_articles(id) ON DELETE CASCADE,
            created_at TEXT NOT NULL,
            UNIQUE(user_id, article_id)
        );

        -- Knowledge graph
        CREATE TABLE IF NOT EXISTS kg_entities (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            description TEXT,
            aliases TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS kg_relations (
            id TEXT PRIMARY KEY,
            source_id TEXT NOT NULL REFERENCES kg_entities(id) ON DELETE CASCADE,
            target_id TEXT NOT NULL REFERENCES kg_entities(id) ON DELETE CASCADE,
            rel_type TEXT NOT NULL,
            weight REAL NOT NULL DEFAULT 1.0,
            created_at TEXT NOT NULL,
            UNIQUE(source_id, target_id, rel_type)
        );

        -- Personalization and analytics
        CREATE TABLE IF NOT EXISTS user_interests (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
            content_type TEXT NOT NULL CHECK(content_type IN ('article', 'course')),
            content_id TEXT NOT NULL,
            interaction_type TEXT NOT NULL,
            strength INTEGER NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS analytics_events (
            id TEXT PRIMARY KEY,
            event_name TEXT NOT NULL,
            user_id TEXT,
            session_id TEXT,
            properties TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS search_queries (
            id TEXT PRIMARY KEY,
            query TEXT NOT NULL,
            locale TEXT NOT NULL,
            category TEXT,
            results_count INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_courses_status ON courses(status);
        CREATE INDEX IF NOT EXISTS idx_modules_course ON course_modules(course_id, order_index);
        CREATE INDEX IF NOT EXISTS idx_user_courses_user ON user_courses(user_id);
        CREATE INDEX IF NOT EXISTS idx_progress_user_course ON user_progress(user_id, course_id);
        CREATE INDEX IF NOT EXISTS idx_xp_log_user ON user_xp_log(user_id, created_at);
        CREATE INDEX IF NOT EXISTS idx_articles_published ON news_articles(published_at);
        CREATE INDEX IF NOT EXISTS idx_interests_user ON user_interests(user_id, created_at);
        CREATE INDEX IF NOT EXISTS idx_analytics_created ON analytics_events(created_at);
        """
    )
