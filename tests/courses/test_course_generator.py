"""Tests for the simple and advanced course generation pipelines."""

import time
from unittest.mock import MagicMock

import pytest

from thotnet.core.course_generator import (
    CourseGenerationError,
    GenerationRequest,
    GenerationTimeoutError,
    coerce_resources,
    generate_advanced_course,
    generate_simple_course,
    module_range,
)
from thotnet.db import courses_repository, enrollments_repository, profiles_repository
from thotnet.events.types import CourseGenerated
from thotnet.llm.chain import ProviderChain
from thotnet.llm.client import LLMError, LLMTimeoutError


def simple_payload(modules=3):
    return {
        "title": "PyTorch Fundamentals",
        "description": "Tensors, autograd and training loops with PyTorch.",
        "objectives": ["Build a model"],
        "modules": [
            {
                "title": f"Part {i + 1}",
                "description": "Overview",
                "content": f"# Part {i + 1}\n\nTensors are n-dimensional arrays.",
                "keyTakeaways": ["Tensors live on devices"],
                "estimatedMinutes": 20,
                "quiz": [{"question": "What is a tensor?", "options": ["A", "B"], "correctAnswer": 1}],
                "resources": ["https://pytorch.org/docs", {"title": "Tutorial", "url": "https://pytorch.org/tutorials"}],
            }
            for i in range(modules)
        ],
    }


@pytest.fixture
def short_request():
    return GenerationRequest(topic="PyTorch fundamentals", difficulty="beginner", duration="short", locale="en")


class TestHelpers:
    """Tests for module ranges and resource coercion."""

    def test_module_range(self):
        assert module_range("short") == (2, 3)
        assert module_range("long") == (7, 10)
        assert module_range("unknown") == (4, 6)

    def test_coerce_resources(self):
        resources = coerce_resources(["https://a.io", "not a url", {"title": "B", "url": "https://b.io", "type": "video"}])
        assert resources == [
            {"title": "https://a.io", "url": "https://a.io", "type": "link"},
            {"title": "B", "url": "https://b.io", "type": "video"},
        ]


class TestSimpleGeneration:
    """Tests for generate_simple_course."""

    def test_stores_course(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.return_value = simple_payload(3)

        result = generate_simple_course(db, bus, mock_llm, short_request)

        course = courses_repository.get_course(db, result.course_id)
        modules = courses_repository.list_modules(db, result.course_id)
        assert result.mode == "simple"
        assert result.modules_count == 3
        assert result.category == "machine-learning"
        assert course.title_en == "PyTorch Fundamentals"
        assert course.title_es == ""
        assert course.ai_generated is True
        assert course.duration_minutes == 45
        assert course.topics == ["PyTorch fundamentals"]
        assert [m.title_en for m in modules] == ["Part 1", "Part 2", "Part 3"]
        assert modules[0].estimated_time == 20
        assert len(modules[0].resources) == 2
        assert result.total_characters == sum(len(m.content_en) for m in modules)

    def test_takeaways_appended(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.return_value = simple_payload(2)

        result = generate_simple_course(db, bus, mock_llm, short_request)

        content = courses_repository.list_modules(db, result.course_id)[0].content_en
        assert content.endswith("## Key takeaways\n\n- Tensors live on devices\n")

    def test_spanish_takeaways_heading(self, db, bus, mock_llm):
        mock_llm.simple_json.return_value = simple_payload(2)
        request = GenerationRequest(topic="PyTorch", duration="short", locale="es")

        result = generate_simple_course(db, bus, mock_llm, request)

        module = courses_repository.list_modules(db, result.course_id)[0]
        assert "## Puntos clave" in module.content_es
        assert module.content_en == ""

    def test_extra_modules_trimmed(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.return_value = simple_payload(5)
        result = generate_simple_course(db, bus, mock_llm, short_request)
        assert result.modules_count == 3
        assert len(result.content["modules"]) == 3

    def test_too_few_modules(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.return_value = simple_payload(1)
        with pytest.raises(CourseGenerationError):
            generate_simple_course(db, bus, mock_llm, short_request)

    def test_invalid_output(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.return_value = {"title": "", "modules": "nope"}

        with pytest.raises(CourseGenerationError) as exc_info:
            generate_simple_course(db, bus, mock_llm, short_request)

        assert exc_info.value.status_code == 500
        assert {d["field"] for d in exc_info.value.details} >= {"title", "description", "modules"}

    def test_timeout(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.side_effect = LLMTimeoutError("slow")
        with pytest.raises(GenerationTimeoutError) as exc_info:
            generate_simple_course(db, bus, mock_llm, short_request)
        assert exc_info.value.status_code == 504

    def test_provider_failure(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.side_effect = LLMError("down")
        with pytest.raises(CourseGenerationError):
            generate_simple_course(db, bus, mock_llm, short_request)

    def test_deadline_passed_to_llm(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.return_value = simple_payload(2)

        generate_simple_course(db, bus, mock_llm, short_request, timeout_seconds=10)

        timeout = mock_llm.simple_json.call_args.kwargs["timeout"]
        assert 0 < timeout <= 10

    def test_deadline_covers_every_provider(self, db, bus, short_request):
        def wait_out(system_prompt, user_message, max_tokens=None, timeout=None):
            time.sleep(timeout)
            raise LLMTimeoutError(f"timed out after {timeout}s")

        clients = []
        for name in ("groq", "openai", "lmstudio"):
            client = MagicMock()
            client.provider = name
            client.simple_json.side_effect = wait_out
            clients.append(client)

        started = time.monotonic()
        with pytest.raises(GenerationTimeoutError):
            generate_simple_course(db, bus, ProviderChain(clients), short_request, timeout_seconds=0.3)

        assert time.monotonic() - started < 0.45
        assert [c.simple_json.call_count for c in clients] == [1, 0, 0]

    def test_creator_rewarded(self, db, bus, mock_llm, short_request, user_id):
        generated = []
        bus.subscribe(CourseGenerated, generated.append)
        mock_llm.simple_json.return_value = simple_payload(2)

        result = generate_simple_course(db, bus, mock_llm, short_request, user_id=user_id)

        assert enrollments_repository.get_enrollment(db, user_id, result.course_id, "created") is not None
        assert profiles_repository.get_profile(db, user_id).total_xp == 150
        assert generated[0].user_id == user_id
        assert generated[0].mode == "simple"

    def test_anonymous_generation_publishes_event(self, db, bus, mock_llm, short_request):
        generated = []
        bus.subscribe(CourseGenerated, generated.append)
        mock_llm.simple_json.return_value = simple_payload(2)

        generate_simple_course(db, bus, mock_llm, short_request)

        assert generated[0].user_id is None


class TestAdvancedGeneration:
    """Tests for generate_advanced_course."""

    def outline(self, modules=2):
        return {
            "title": "Attention Deep Dive",
            "description": "How transformers attend.",
            "modules": [
                {"title": "Queries and keys", "description": "Scores", "topics": ["attention", "softmax"], "estimated_minutes": 20},
                {"title": "Multi-head", "description": "Heads", "topics": ["attention", "heads"]},
                {"title": "Extra", "description": "Extra", "topics": []},
                {"title": "More", "description": "More", "topics": []},
            ][:modules],
        }

    def test_outline_then_modules(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.side_effect = [
            self.outline(2),
            {"content": "Attention scores compare queries and keys.", "resources": ["https://arxiv.org/abs/1706.03762"]},
            {"content": "Several heads attend in parallel."},
        ]

        result = generate_advanced_course(db, bus, mock_llm, short_request)

        assert mock_llm.simple_json.call_count == 3
        assert result.mode == "advanced"
        assert result.modules_count == 2
        assert result.total_characters == len("Attention scores compare queries and keys.") + len("Several heads attend in parallel.")

        course = courses_repository.get_course(db, result.course_id)
        assert course.topics == ["PyTorch fundamentals", "attention", "softmax", "heads"]
        assert course.duration_minutes == 25
        modules = courses_repository.list_modules(db, result.course_id)
        assert modules[0].resources[0]["type"] == "link"

    def test_module_prompt_mentions_module(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.side_effect = [self.outline(2), {"content": "One."}, {"content": "Two."}]

        generate_advanced_course(db, bus, mock_llm, short_request)

        second_prompt = mock_llm.simple_json.call_args_list[1].args[1]
        assert "Queries and keys" in second_prompt

    def test_outline_trimmed(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.side_effect = [self.outline(4), {"content": "1"}, {"content": "2"}, {"content": "3"}]
        result = generate_advanced_course(db, bus, mock_llm, short_request)
        assert result.modules_count == 3

    def test_empty_module_content(self, db, bus, mock_llm, short_request):
        mock_llm.simple_json.side_effect = [self.outline(2), {"content": ""}]
        with pytest.raises(CourseGenerationError):
            generate_advanced_course(db, bus, mock_llm, short_request)
        assert courses_repository.list_courses(db)[1] == 0
