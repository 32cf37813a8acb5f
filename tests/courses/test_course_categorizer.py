"""Tests for keyword course categorization."""

from thotnet.core.course_categorizer import (
    COURSE_CATEGORIES,
    DEFAULT_CATEGORY,
    CATEGORY_KEYWORDS,
    categorize_course,
    score_categories,
)


class TestCategorizeCourse:
    """Tests for categorize_course."""

    def test_machine_learning(self):
        assert categorize_course("Training models with PyTorch") == "machine-learning"

    def test_description_counts(self):
        assert categorize_course("Hiring models", "Fairness and bias in automated decisions") == "ethics-safety"

    def test_whole_words_only(self):
        """"ml" inside "html" is not a machine learning hit."""
        assert categorize_course("HTML basics") == DEFAULT_CATEGORY

    def test_tie_goes_to_first_listed(self):
        assert score_categories("neural network") == {"machine-learning": 1, "neural-networks": 1}
        assert categorize_course("neural network") == "machine-learning"

    def test_no_hits(self):
        assert categorize_course("Cooking pasta") == "general"


class TestCatalogue:
    """Tests for the category list."""

    def test_every_keyword_category_is_listed(self):
        ids = {category.id for category in COURSE_CATEGORIES}
        assert set(CATEGORY_KEYWORDS) <= ids
        assert DEFAULT_CATEGORY in ids
