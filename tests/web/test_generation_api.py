"""Tests for the course generation endpoints."""

from unittest.mock import MagicMock

from thotnet.db import courses_repository, enrollments_repository
from thotnet.llm.client import LLMTimeoutError


def simple_payload(modules=3):
    return {
        "title": "Prompt Engineering",
        "description": "Writing prompts that work.",
        "modules": [
            {
                "title": f"Lesson {i + 1}",
                "description": "Overview",
                "content": f"# Lesson {i + 1}\n\nBe specific about the output format.",
                "keyTakeaways": ["Show examples"],
                "estimatedMinutes": 15,
            }
            for i in range(modules)
        ],
    }


def outline_payload():
    return {
        "title": "Retrieval Augmented Generation",
        "description": "Grounding answers in documents.",
        "modules": [
            {"title": "Embeddings", "description": "Vectors", "topics": ["embeddings"], "estimated_minutes": 20},
            {"title": "Retrieval", "description": "Search", "topics": ["vector search"], "estimated_minutes": 25},
        ],
    }


class TestSimpleGeneration:
    """Tests for POST /api/generate-course-simple."""

    def test_generates_course(self, client, db, mock_llm):
        mock_llm.simple_json.return_value = simple_payload(3)

        response = client.post("/api/generate-course-simple", json={"topic": "prompting", "duration": "short"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Prompt Engineering"
        assert data["modules_count"] == 3
        assert data["content"]["modules"][0]["title"] == "Lesson 1"
        assert courses_repository.get_course(db, data["course_id"]) is not None

    def test_signed_in_creator(self, client, db, mock_llm, auth_headers):
        mock_llm.simple_json.return_value = simple_payload(3)

        data = client.post(
            "/api/generate-course-simple",
            json={"topic": "prompting", "duration": "short"},
            headers=auth_headers,
        ).json()["data"]

        created = enrollments_repository.get_enrollment(db, "user-1", data["course_id"], relationship_type="created")
        assert created is not None

    def test_rejects_bad_difficulty(self, client):
        response = client.post("/api/generate-course-simple", json={"topic": "x", "difficulty": "expert"})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "difficulty"

    def test_timeout_is_504(self, client, mock_llm):
        mock_llm.simple_json.side_effect = LLMTimeoutError("slow")

        response = client.post("/api/generate-course-simple", json={"topic": "prompting"})

        assert response.status_code == 504
        assert response.json()["success"] is False

    def test_invalid_output_is_500(self, client, mock_llm):
        mock_llm.simple_json.return_value = {"title": "Only a title"}

        response = client.post("/api/generate-course-simple", json={"topic": "prompting"})

        assert response.status_code == 500

    def test_cover_scheduled_with_image_client(self, client, db, mock_llm, services):
        image_client = MagicMock()
        image_client.generate_image.return_value = "https://images.example/cover.png"
        mock_llm.get_client.return_value = image_client
        mock_llm.simple_json.return_value = simple_payload(3)
        services.config.generation.illustrations_enabled = True

        data = client.post("/api/generate-course-simple", json={"topic": "prompting", "duration": "short"}).json()["data"]

        image_client.generate_image.assert_called_once()
        course = courses_repository.get_course(db, data["course_id"])
        assert course.thumbnail_url == "https://images.example/cover.png"

    def test_no_cover_without_image_client(self, client, mock_llm, services):
        mock_llm.simple_json.return_value = simple_payload(3)
        services.config.generation.illustrations_enabled = True

        response = client.post("/api/generate-course-simple", json={"topic": "prompting", "duration": "short"})

        assert response.status_code == 200
        mock_llm.get_client.assert_called_with("openai")


class TestAdvancedGeneration:
    """Tests for POST /api/courses/generate-advanced."""

    def test_generates_course(self, client, mock_llm):
        mock_llm.simple_json.side_effect = [
            outline_payload(),
            {"content": "Embeddings map text to vectors."},
            {"content": "Retrieval finds nearby vectors."},
        ]

        response = client.post(
            "/api/courses/generate-advanced",
            json={"topic": "RAG systems", "difficulty": "intermediate", "duration": "short", "locale": "en"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Retrieval Augmented Generation"
        assert data["modules"] == 2
        assert data["total_characters"] == len("Embeddings map text to vectors.") + len("Retrieval finds nearby vectors.")

    def test_all_fields_required(self, client):
        response = client.post("/api/courses/generate-advanced", json={"topic": "RAG systems"})
        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert fields == {"difficulty", "duration", "locale"}

    def test_topic_too_short(self, client):
        response = client.post(
            "/api/courses/generate-advanced",
            json={"topic": "AI", "difficulty": "beginner", "duration": "short", "locale": "en"},
        )
        assert response.status_code == 400
