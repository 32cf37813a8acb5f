"""Tests for enrollment and module progress rewards."""

import pytest

from thotnet.core import enrollment
from thotnet.db import courses_repository, enrollments_repository, profiles_repository
from thotnet.errors import Conflict, NotFound
from thotnet.events.types import CourseCompleted, CourseEnrolled


@pytest.fixture
def course_id(make_course):
    return make_course(modules=3)


@pytest.fixture
def module_ids(db, course_id):
    return [m.id for m in courses_repository.list_modules(db, course_id)]


class TestEnroll:
    """Tests for enroll and unenroll."""

    def test_enroll(self, db, bus, user_id, course_id):
        published = []
        bus.subscribe(CourseEnrolled, published.append)

        record = enrollment.enroll(db, bus, user_id, course_id)

        assert record.relationship_type == "enrolled"
        assert record.progress_percentage == 0
        assert courses_repository.get_course(db, course_id).enrollment_count == 1
        assert profiles_repository.get_profile(db, user_id).total_xp == 10
        assert published[0].course_id == course_id

    def test_duplicate_enrollment_conflicts(self, db, bus, user_id, course_id):
        enrollment.enroll(db, bus, user_id, course_id)
        with pytest.raises(Conflict):
            enrollment.enroll(db, bus, user_id, course_id)
        assert courses_repository.get_course(db, course_id).enrollment_count == 1

    def test_unknown_course(self, db, bus, user_id):
        with pytest.raises(NotFound):
            enrollment.enroll(db, bus, user_id, "missing")

    def test_unenroll(self, db, bus, user_id, course_id):
        enrollment.enroll(db, bus, user_id, course_id)
        enrollment.unenroll(db, user_id, course_id)

        assert enrollments_repository.get_enrollment(db, user_id, course_id) is None
        assert courses_repository.get_course(db, course_id).enrollment_count == 0

    def test_unenroll_when_not_enrolled(self, db, user_id, course_id):
        with pytest.raises(NotFound):
            enrollment.unenroll(db, user_id, course_id)


class TestRecordProgress:
    """Tests for record_progress."""

    def test_module_completion_awards_xp(self, db, bus, user_id, course_id, module_ids):
        enrollment.enroll(db, bus, user_id, course_id)

        result = enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], completed=True)

        assert result.progress.completed
        assert result.progress_percentage == 33
        assert not result.course_completed
        assert [a.action_type for a in result.xp_awarded] == ["module_complete"]
        assert enrollments_repository.get_enrollment(db, user_id, course_id).progress_percentage == 33

    def test_repeat_completion_awards_nothing(self, db, bus, user_id, course_id, module_ids):
        enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], completed=True)
        again = enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], completed=True)
        assert again.xp_awarded == []

    def test_module_never_uncompletes(self, db, bus, user_id, course_id, module_ids):
        enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], completed=True)
        result = enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], completed=False)
        assert result.progress.completed

    def test_time_spent_accumulates(self, db, bus, user_id, course_id, module_ids):
        enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], time_spent=60)
        result = enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], time_spent=45)
        assert result.progress.time_spent == 105

    def test_course_completion(self, db, bus, user_id, course_id, module_ids):
        completed = []
        bus.subscribe(CourseCompleted, completed.append)
        enrollment.enroll(db, bus, user_id, course_id)

        result = None
        for module_id in module_ids:
            result = enrollment.record_progress(db, bus, user_id, course_id, module_id, completed=True)

        assert result.course_completed
        assert result.progress_percentage == 100
        assert "course_complete" in [a.action_type for a in result.xp_awarded]
        assert "first_completion" in [b.id for b in result.badges]
        assert len(completed) == 1
        assert enrollments_repository.get_enrollment(db, user_id, course_id).completed_at is not None

    def test_perfect_score_awarded_once(self, db, bus, user_id, course_id, module_ids):
        first = enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], score=100)
        second = enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], score=100)

        assert [a.action_type for a in first.xp_awarded] == ["perfect_score"]
        assert "perfectionist" in [b.id for b in first.badges]
        assert second.xp_awarded == []

    def test_unknown_module(self, db, bus, user_id, course_id):
        with pytest.raises(NotFound):
            enrollment.record_progress(db, bus, user_id, course_id, "nope", completed=True)


class TestCourseProgressSummary:
    """Tests for get_course_progress."""

    def test_summary(self, db, bus, user_id, course_id, module_ids):
        enrollment.record_progress(db, bus, user_id, course_id, module_ids[0], completed=True, score=80, time_spent=120)
        enrollment.record_progress(db, bus, user_id, course_id, module_ids[1], score=60, time_spent=30)

        summary = enrollment.get_course_progress(db, user_id, course_id)

        assert summary.total_modules == 3
        assert summary.completed_modules == 1
        assert summary.percentage == 33
        assert summary.time_spent == 150
        assert summary.average_score == 70
        assert summary.last_accessed_at is not None

    def test_unknown_course(self, db, user_id):
        with pytest.raises(NotFound):
            enrollment.get_course_progress(db, user_id, "missing")
