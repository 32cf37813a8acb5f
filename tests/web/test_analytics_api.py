"""Tests for analytics endpoints."""

import pytest


@pytest.fixture
def analytics_token(monkeypatch):
    monkeypatch.setenv("TEST_ANALYTICS_TOKEN", "s3cret")
    return "s3cret"


class TestRecordEvent:
    """Tests for POST /api/analytics/events."""

    def test_anonymous_event(self, client):
        response = client.post(
            "/api/analytics/events", json={"event": "page_view", "properties": {"path": "/news"}, "sessionId": "s1"}
        )
        assert response.status_code == 201
        assert response.json()["data"]["id"]

    def test_blank_event_name(self, client):
        response = client.post("/api/analytics/events", json={"event": "   "})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "event"


class TestDashboard:
    """Tests for GET /api/analytics."""

    def test_anonymous_rejected(self, client):
        assert client.get("/api/analytics").status_code == 401

    def test_wrong_token_rejected(self, client, analytics_token):
        assert client.get("/api/analytics", params={"token": "nope"}).status_code == 401

    def test_token_header(self, client, analytics_token):
        client.post("/api/analytics/events", json={"event": "page_view"})
        client.post("/api/analytics/events", json={"event": "page_view"})

        response = client.get("/api/analytics", headers={"x-analytics-token": analytics_token})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["days"] == 7
        assert data["total_events"] == 2
        assert data["events_by_name"] == {"page_view": 2}

    def test_signed_in_user_sees_domain_events(self, client, auth_headers, make_course):
        course = make_course()
        client.post("/api/courses/enroll", json={"courseId": course.id}, headers=auth_headers)

        data = client.get("/api/analytics", headers=auth_headers).json()["data"]

        assert data["events_by_name"]["course_enrolled"] == 1
        assert data["unique_users"] == 1

    def test_top_searches(self, client, analytics_token, make_article):
        make_article(title="Claude news")
        client.get("/api/search", params={"q": "Claude"})
        client.get("/api/search", params={"q": "claude"})

        data = client.get("/api/analytics", params={"token": analytics_token}).json()["data"]

        assert data["top_searches"][0]["query"] == "claude"
        assert data["top_searches"][0]["count"] == 2

    def test_top_searches_fold_accents(self, client, analytics_token):
        client.get("/api/search", params={"q": "Ética"})
        client.get("/api/search", params={"q": "ética"})

        data = client.get("/api/analytics", params={"token": analytics_token}).json()["data"]

        assert data["top_searches"][0]["query"] == "ética"
        assert data["top_searches"][0]["count"] == 2

    def test_days_out_of_range(self, client, analytics_token):
        response = client.get("/api/analytics", params={"token": analytics_token, "days": 0})
        assert response.status_code == 400


class TestExport:
    """Tests for GET /api/analytics/export."""

    def test_csv_download(self, client, analytics_token):
        client.post("/api/analytics/events", json={"event": "signup, beta"})

        response = client.get("/api/analytics/export", params={"token": analytics_token, "days": 7})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="thotnet-analytics-7d.csv"'
        lines = response.text.splitlines()
        assert lines[0] == "dataset,metric,value,user_id,event_name,query,locale,results_count,created_at"
        assert '"signup, beta"' in response.text

    def test_export_requires_access(self, client):
        assert client.get("/api/analytics/export").status_code == 401
