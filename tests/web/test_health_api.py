"""Tests for the health endpoint and the shared error envelope."""

from thotnet import __version__


class TestHealth:
    """Tests for GET /health."""

    def test_health_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__
        assert "timestamp" in data


class TestErrorEnvelope:
    """Error responses share one shape."""

    def test_not_found(self, client):
        response = client.get("/api/courses/missing")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert "missing" in body["error"]
        assert "details" not in body

    def test_validation_details_use_wire_names(self, client, auth_headers):
        response = client.post("/api/courses/enroll", json={}, headers=auth_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert [d["field"] for d in body["details"]] == ["courseId"]
