"""Tests for course catalog, enrollment, progress and rating endpoints."""

from thotnet.db import courses_repository, enrollments_repository


def module_ids(db, course_id):
    return [module.id for module in courses_repository.list_modules(db, course_id)]


class TestCatalog:
    """Tests for GET /api/courses and GET /api/courses/{id}."""

    def test_list_paged(self, client, make_course):
        for i in range(3):
            make_course(title=f"Course {i}")

        response = client.get("/api/courses", params={"limit": 2})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == 2
        assert body["pagination"] == {"total": 3, "limit": 2, "offset": 0, "hasMore": True}

    def test_list_filters_by_difficulty(self, client, make_course):
        make_course(title="Basics")
        make_course(title="Deep", difficulty="advanced")

        response = client.get("/api/courses", params={"difficulty": "advanced"})
        titles = [c["title"] for c in response.json()["data"]]
        assert titles == ["Deep"]

    def test_detail_counts_view(self, client, make_course):
        course = make_course(modules=2)

        first = client.get(f"/api/courses/{course.id}").json()["data"]
        second = client.get(f"/api/courses/{course.id}").json()["data"]

        assert first["modules_count"] == 2
        assert [m["title"] for m in first["modules"]] == ["Module 1", "Module 2"]
        assert second["view_count"] == first["view_count"] + 1

    def test_detail_has_gradient_without_thumbnail(self, client, make_course):
        course = make_course()
        data = client.get(f"/api/courses/{course.id}").json()["data"]
        assert set(data["cover_gradient"]) == {"from", "to"}

    def test_detail_unknown(self, client):
        assert client.get("/api/courses/nope").status_code == 404

    def test_invalid_locale(self, client):
        response = client.get("/api/courses", params={"locale": "fr"})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "locale"


class TestEnrollmentEndpoints:
    """Tests for POST/DELETE /api/courses/enroll."""

    def test_enroll(self, client, db, auth_headers, make_course):
        course = make_course()

        response = client.post("/api/courses/enroll", json={"courseId": course.id}, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["course_id"] == course.id
        assert data["relationship_type"] == "enrolled"
        assert data["progress_percentage"] == 0
        assert enrollments_repository.get_enrollment(db, "user-1", course.id) is not None

    def test_enroll_twice_conflicts(self, client, auth_headers, make_course):
        course = make_course()
        client.post("/api/courses/enroll", json={"courseId": course.id}, headers=auth_headers)

        response = client.post("/api/courses/enroll", json={"courseId": course.id}, headers=auth_headers)
        assert response.status_code == 409

    def test_enroll_requires_auth(self, client, make_course):
        course = make_course()
        response = client.post("/api/courses/enroll", json={"courseId": course.id})
        assert response.status_code == 401

    def test_unenroll(self, client, db, auth_headers, make_course):
        course = make_course()
        client.post("/api/courses/enroll", json={"courseId": course.id}, headers=auth_headers)

        response = client.delete("/api/courses/enroll", params={"courseId": course.id}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"course_id": course.id, "enrolled": False}
        assert enrollments_repository.get_enrollment(db, "user-1", course.id) is None

    def test_unenroll_needs_course_id(self, client, auth_headers):
        response = client.delete("/api/courses/enroll", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["details"] == [{"field": "courseId", "message": "required"}]


class TestProgressEndpoints:
    """Tests for GET/POST /api/courses/{id}/progress."""

    def test_complete_module(self, client, db, auth_headers, make_course):
        course = make_course(modules=2)
        first, _ = module_ids(db, course.id)

        response = client.post(
            f"/api/courses/{course.id}/progress",
            json={"moduleId": first, "completed": True, "timeSpent": 120},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["progress"]["completed"] is True
        assert data["progress_percentage"] == 50
        assert data["course_completed"] is False
        assert data["xp_awarded"] >= 50

    def test_finish_course(self, client, db, auth_headers, make_course):
        course = make_course(modules=2)
        client.post("/api/courses/enroll", json={"courseId": course.id}, headers=auth_headers)
        for module_id in module_ids(db, course.id):
            response = client.post(
                f"/api/courses/{course.id}/progress",
                json={"moduleId": module_id, "completed": True},
                headers=auth_headers,
            )

        data = response.json()["data"]
        assert data["course_completed"] is True
        assert data["progress_percentage"] == 100
        assert "first_completion" in [b["id"] for b in data["badges"]]

    def test_score_out_of_range(self, client, db, auth_headers, make_course):
        course = make_course()
        response = client.post(
            f"/api/courses/{course.id}/progress",
            json={"moduleId": module_ids(db, course.id)[0], "score": 120},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "score"

    def test_unknown_module(self, client, auth_headers, make_course):
        course = make_course()
        response = client.post(
            f"/api/courses/{course.id}/progress",
            json={"moduleId": "nope", "completed": True},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_summary(self, client, db, auth_headers, make_course):
        course = make_course(modules=4)
        first = module_ids(db, course.id)[0]
        client.post(
            f"/api/courses/{course.id}/progress",
            json={"moduleId": first, "completed": True, "score": 80, "timeSpent": 60},
            headers=auth_headers,
        )

        response = client.get(f"/api/courses/{course.id}/progress", headers=auth_headers)

        stats = response.json()["data"]["stats"]
        assert stats["total_modules"] == 4
        assert stats["completed_modules"] == 1
        assert stats["progress_percentage"] == 25
        assert stats["time_spent"] == 60
        assert stats["average_score"] == 80


class TestRatingEndpoints:
    """Tests for /api/courses/{id}/ratings."""

    def test_rate_and_list(self, client, auth_headers, other_headers, make_course):
        course = make_course()

        first = client.post(
            f"/api/courses/{course.id}/ratings",
            json={"rating": 5, "review": "Great"},
            headers=auth_headers,
        )
        client.post(f"/api/courses/{course.id}/ratings", json={"rating": 4}, headers=other_headers)

        assert first.status_code == 200
        assert first.json()["data"]["created"] is True
        assert first.json()["data"]["xp_awarded"] == 15

        listing = client.get(f"/api/courses/{course.id}/ratings").json()["data"]
        assert len(listing["ratings"]) == 2
        assert listing["stats"]["average"] == 4.5
        assert listing["stats"]["count"] == 2

    def test_update_earns_nothing(self, client, auth_headers, make_course):
        course = make_course()
        client.post(f"/api/courses/{course.id}/ratings", json={"rating": 3}, headers=auth_headers)

        response = client.post(f"/api/courses/{course.id}/ratings", json={"rating": 4}, headers=auth_headers)

        data = response.json()["data"]
        assert data["created"] is False
        assert data["xp_awarded"] == 0
        assert data["rating"]["rating"] == 4

    def test_rating_bounds(self, client, auth_headers, make_course):
        course = make_course()
        response = client.post(f"/api/courses/{course.id}/ratings", json={"rating": 6}, headers=auth_headers)
        assert response.status_code == 400

    def test_delete(self, client, auth_headers, make_course):
        course = make_course()
        client.post(f"/api/courses/{course.id}/ratings", json={"rating": 3}, headers=auth_headers)

        response = client.delete(f"/api/courses/{course.id}/ratings", headers=auth_headers)
        assert response.json()["data"] == {"course_id": course.id, "deleted": True}

        again = client.delete(f"/api/courses/{course.id}/ratings", headers=auth_headers)
        assert again.status_code == 404
