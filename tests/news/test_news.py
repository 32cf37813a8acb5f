"""Tests for article presentation and reader actions."""

import pytest

from thotnet.core import news
from thotnet.db import articles_repository, profiles_repository
from thotnet.errors import NotFound


class TestNormalizeArticle:
    """Tests for normalize_article."""

    def test_locale_fallback(self, db, make_article):
        article_id = make_article("Diffusion explained", title_es="Difusión explicada")
        article = articles_repository.get_article(db, article_id)

        assert news.normalize_article(article, "es")["title"] == "Difusión explicada"
        assert news.normalize_article(article, "es")["summary"] == "Summary of Diffusion explained"

    def test_content_only_on_request(self, db, make_article):
        article = articles_repository.get_article(db, make_article())
        assert "content" not in news.normalize_article(article)
        assert news.normalize_article(article, include_content=True)["content"] == "Full story about GPT-5 released."


class TestReaderActions:
    """Tests for mark_read and bookmarks."""

    def test_mark_read_once(self, db, bus, user_id, make_article):
        article_id = make_article()

        first = news.mark_read(db, bus, user_id, article_id)
        second = news.mark_read(db, bus, user_id, article_id)

        assert first.created and first.xp.amount == 5
        assert not second.created and second.xp is None
        assert profiles_repository.get_profile(db, user_id).total_xp == 5

    def test_tenth_article_unlocks_bookworm(self, db, bus, user_id, make_article):
        results = [news.mark_read(db, bus, user_id, make_article(f"Story {i}")) for i in range(10)]
        assert [b.id for b in results[-1].badges] == ["bookworm"]
        assert all(r.badges == [] for r in results[:-1])

    def test_bookmark(self, db, bus, user_id, make_article):
        article_id = make_article()

        first = news.add_bookmark(db, bus, user_id, article_id)
        second = news.add_bookmark(db, bus, user_id, article_id)

        assert first.created and first.xp.amount == 2
        assert not second.created
        assert articles_repository.count_bookmarks(db, user_id) == 1

    def test_remove_bookmark(self, db, bus, user_id, make_article):
        article_id = make_article()
        news.add_bookmark(db, bus, user_id, article_id)

        news.remove_bookmark(db, user_id, article_id)

        assert articles_repository.list_bookmarks(db, user_id) == []
        with pytest.raises(NotFound):
            news.remove_bookmark(db, user_id, article_id)

    def test_unknown_article(self, db, bus, user_id):
        with pytest.raises(NotFound):
            news.mark_read(db, bus, user_id, "missing")
        with pytest.raises(NotFound):
            news.add_bookmark(db, bus, user_id, "missing")


class TestStats:
    """Tests for article statistics."""

    def test_stats(self, db, make_article):
        make_article("A", category="llm", quality=0.8, source_url="https://openai.com/blog/a")
        make_article("B", category="llm", quality=0.6, source_url="https://openai.com/blog/b")
        make_article("C", category="robotics", quality=0.7, source_url="https://deepmind.google/c",
                     published_at="2020-01-01T00:00:00+00:00")

        stats = articles_repository.get_stats(db)

        assert stats["total"] == 3
        assert stats["today"] == 2
        assert stats["avg_quality_score"] == 70
        assert stats["sources"] == 2
        assert stats["categories"] == {"llm": 2, "robotics": 1}
