"""Web-test fixtures: content factories return the inserted records rather than bare ids."""

import pytest

from thotnet.db import articles_repository, courses_repository


@pytest.fixture
def make_course(db, make_course):
    def _make(*args, **kwargs):
        return courses_repository.get_course(db, make_course(*args, **kwargs))

    return _make


@pytest.fixture
def make_article(db, make_article):
    def _make(*args, **kwargs):
        return articles_repository.get_article(db, make_article(*args, **kwargs))

    return _make
