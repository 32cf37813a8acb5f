"""Shared fixtures: temporary database, event bus, users, content and API client."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from thotnet.config.app_config import AppConfig, SiteConfig
from thotnet.core import badge_awards
from thotnet.db import articles_repository, auth_repository, courses_repository, profiles_repository
from thotnet.db.courses_repository import NewModule
from thotnet.db.database import Database
from thotnet.events.bus import EventBus
from thotnet.web.api import create_app
from thotnet.web.services import build_services


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database with schema and badge catalogue."""
    database = Database(tmp_path / "thotnet.db")
    database.init_schema()
    badge_awards.seed_badges(database)
    return database


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def user_id(db):
    """A user with an empty profile."""
    profiles_repository.ensure_profile(db, "user-1", display_name="Ada")
    return "user-1"


@pytest.fixture
def make_course(db):
    """Factory inserting a published course with N modules."""

    def _make(
        title="Intro to Transformers",
        modules=3,
        category="machine-learning",
        topics=None,
        difficulty="beginner",
        locale="en",
    ):
        return courses_repository.insert_course(
            db,
            title=title,
            description=f"Learn {title}",
            locale=locale,
            difficulty=difficulty,
            duration_minutes=0,
            topics=topics if topics is not None else ["transformers", "attention"],
            category=category,
            modules=[
                NewModule(title=f"Module {i + 1}", content=f"Content of module {i + 1}. More text.", estimated_time=10)
                for i in range(modules)
            ],
        )

    return _make


@pytest.fixture
def make_article(db):
    """Factory inserting a news article."""

    def _make(title="GPT-5 released", category="llm", tags=None, quality=0.8, published_at=None, **kwargs):
        return articles_repository.insert_article(
            db,
            title_en=title,
            title_es=kwargs.pop("title_es", ""),
            summary_en=kwargs.pop("summary_en", f"Summary of {title}"),
            content_en=kwargs.pop("content_en", f"Full story about {title}."),
            category=category,
            tags=tags if tags is not None else ["openai"],
            source_url=kwargs.pop("source_url", "https://example.com/news"),
            quality_score=quality,
            published_at=published_at,
            **kwargs,
        )

    return _make


@pytest.fixture
def mock_llm():
    """Provider chain stand-in; tests set simple_json.return_value or side_effect."""
    llm = MagicMock()
    llm.providers = ["mock"]
    llm.get_client.return_value = None
    return llm


@pytest.fixture
def app_config():
    return AppConfig(site=SiteConfig(analytics_public=False, analytics_token_env="TEST_ANALYTICS_TOKEN"))


@pytest.fixture
def services(app_config, db, mock_llm, bus):
    return build_services(config=app_config, db=db, llm=mock_llm, bus=bus)


@pytest.fixture
def client(services):
    """API test client over the temporary database and mock LLM."""
    return TestClient(create_app(services))


@pytest.fixture
def auth_headers(db, user_id):
    """Bearer header for user-1."""
    token = auth_repository.create_session(db, user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(db):
    """Bearer header for a second user."""
    profiles_repository.ensure_profile(db, "user-2", display_name="Grace")
    token = auth_repository.create_session(db, "user-2")
    return {"Authorization": f"Bearer {token}"}
