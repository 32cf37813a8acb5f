"""Tests for XP awards, streaks and stats."""

from datetime import date

import pytest

from thotnet.core import gamification
from thotnet.db import profiles_repository
from thotnet.errors import NotFound, ValidationFailed
from thotnet.events.types import LevelUp, XPAwarded


@pytest.fixture
def captured(bus):
    events = []
    bus.subscribe(XPAwarded, events.append)
    bus.subscribe(LevelUp, events.append)
    return events


class TestAwardXP:
    """Tests for award_xp."""

    def test_award_updates_profile(self, db, bus, user_id):
        result = gamification.award_xp(db, bus, user_id, "course_enroll", reference_id="c1")

        assert result.amount == 10
        assert result.total_xp == 10
        profile = profiles_repository.get_profile(db, user_id)
        assert profile.total_xp == 10
        assert profile.last_activity_at is not None

    def test_award_logs_transaction(self, db, bus, user_id):
        gamification.award_xp(db, bus, user_id, "article_read", reference_id="a1")

        log = profiles_repository.list_xp_log(db, user_id)
        assert len(log) == 1
        assert log[0].action_type == "article_read"
        assert log[0].reference_id == "a1"

    def test_level_up_publishes_event(self, db, bus, user_id, captured):
        result = gamification.award_xp(db, bus, user_id, "course_complete")

        assert result.old_level == 1
        assert result.new_level == 2
        assert result.leveled_up
        assert [type(e) for e in captured] == [XPAwarded, LevelUp]
        assert profiles_repository.get_profile(db, user_id).level == 2

    def test_no_level_up_event_below_threshold(self, db, bus, user_id, captured):
        gamification.award_xp(db, bus, user_id, "article_read")
        assert [type(e) for e in captured] == [XPAwarded]

    def test_unknown_action_rejected(self, db, bus, user_id):
        with pytest.raises(ValidationFailed):
            gamification.award_xp(db, bus, user_id, "time_travel")

    def test_explicit_amount_for_custom_action(self, db, bus, user_id):
        result = gamification.award_xp(db, bus, user_id, "badge_reward", amount=75)
        assert result.total_xp == 75

    def test_non_positive_amount_rejected(self, db, bus, user_id):
        with pytest.raises(ValidationFailed):
            gamification.award_xp(db, bus, user_id, "badge_reward", amount=0)

    def test_unknown_user(self, db, bus):
        with pytest.raises(NotFound):
            gamification.award_xp(db, bus, "ghost", "article_read")

    def test_award_once(self, db, bus, user_id):
        first = gamification.award_xp_once(db, bus, user_id, "article_read", reference_id="a1")
        second = gamification.award_xp_once(db, bus, user_id, "article_read", reference_id="a1")

        assert first is not None
        assert second is None
        assert profiles_repository.get_profile(db, user_id).total_xp == 5


class TestStreak:
    """Tests for update_streak."""

    def test_first_activity_starts_streak(self, db, bus, user_id):
        result = gamification.update_streak(db, bus, user_id, today=date(2026, 3, 1))
        assert result.streak_days == 1
        assert result.changed

    def test_same_day_is_noop(self, db, bus, user_id):
        gamification.update_streak(db, bus, user_id, today=date(2026, 3, 1))
        result = gamification.update_streak(db, bus, user_id, today=date(2026, 3, 1))
        assert result.streak_days == 1
        assert not result.changed

    def test_next_day_extends(self, db, bus, user_id):
        gamification.update_streak(db, bus, user_id, today=date(2026, 3, 1))
        result = gamification.update_streak(db, bus, user_id, today=date(2026, 3, 2))
        assert result.streak_days == 2
        assert result.longest_streak == 2

    def test_gap_resets_but_keeps_longest(self, db, bus, user_id):
        for day in (1, 2, 3):
            gamification.update_streak(db, bus, user_id, today=date(2026, 3, day))
        result = gamification.update_streak(db, bus, user_id, today=date(2026, 3, 10))
        assert result.streak_days == 1
        assert result.longest_streak == 3

    def test_seventh_day_awards_week_bonus(self, db, bus, user_id):
        result = None
        for day in range(1, 8):
            result = gamification.update_streak(db, bus, user_id, today=date(2026, 3, day))

        assert result.streak_days == 7
        assert result.week_bonus is not None
        assert result.week_bonus.amount == 50


class TestStats:
    """Tests for get_stats and recalculate_levels."""

    def test_stats(self, db, bus, user_id):
        gamification.award_xp(db, bus, user_id, "course_complete")
        gamification.award_xp(db, bus, user_id, "article_read")

        stats = gamification.get_stats(db, user_id)
        assert stats.total_xp == 205
        assert stats.level == 2
        assert stats.tier == "bronze"
        assert stats.xp_to_next_level == 195
        assert len(stats.recent_transactions) == 2

    def test_stats_unknown_user(self, db):
        with pytest.raises(NotFound):
            gamification.get_stats(db, "ghost")

    def test_recalculate_levels(self, db, bus, user_id):
        gamification.award_xp(db, bus, user_id, "course_complete")
        profiles_repository.set_level(db, user_id, 7)

        assert gamification.recalculate_levels(db) == 1
        assert profiles_repository.get_profile(db, user_id).level == 2
