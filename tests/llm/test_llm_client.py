"""Tests for the single-provider LLM client."""

import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from thotnet.config.app_config import GenerationConfig, ProviderConfig
from thotnet.llm.client import (
    LLMClient,
    LLMConfig,
    LLMConnectionError,
    LLMError,
    LLMResponseError,
    LLMTimeoutError,
    Message,
)

REQUEST = httpx.Request("POST", "http://localhost:1234/v1/chat/completions")


def completion(content, model="test-model"):
    usage = SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        model=model,
        usage=usage,
    )


@pytest.fixture
def client():
    llm = LLMClient(LLMConfig(provider="groq", base_url="https://api.groq.com/openai/v1", api_key="test"))
    llm._client = MagicMock()
    return llm


def create_mock(client):
    return client._client.chat.completions.create


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_defaults(self):
        config = LLMConfig()
        assert config.provider == "lmstudio"
        assert config.base_url == "http://localhost:1234/v1"
        assert config.timeout == 45.0

    def test_from_provider(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
        provider = ProviderConfig(base_url="https://api.groq.com/openai/v1", default_model="llama", api_key_env="GROQ_API_KEY")

        config = LLMConfig.from_provider("groq", provider, GenerationConfig(timeout_seconds=30, max_tokens=2000))

        assert config.model == "llama"
        assert config.api_key == "gsk-test"
        assert config.timeout == 30
        assert config.max_tokens == 2000

    def test_unknown_provider(self):
        with pytest.raises(KeyError):
            LLMConfig.from_provider("no-such-provider", generation=GenerationConfig())


class TestChat:
    """Tests for LLMClient.chat."""

    def test_success(self, client):
        create_mock(client).return_value = completion("Hello")

        response = client.chat([Message(role="user", content="Hi")])

        assert response.content == "Hello"
        assert response.provider == "groq"
        assert response.total_tokens == 15

    def test_json_mode_sets_response_format(self, client):
        create_mock(client).return_value = completion("{}")
        client.chat([Message(role="user", content="Hi")], json_mode=True)
        assert create_mock(client).call_args.kwargs["response_format"] == {"type": "json_object"}

    def test_json_mode_skipped_for_local_servers(self):
        llm = LLMClient(LLMConfig(provider="lmstudio"))
        llm._client = MagicMock()
        llm._client.chat.completions.create.return_value = completion("{}")

        llm.chat([Message(role="user", content="Hi")], json_mode=True)

        assert "response_format" not in llm._client.chat.completions.create.call_args.kwargs

    def test_timeout_override(self, client):
        create_mock(client).return_value = completion("ok")
        client.chat([Message(role="user", content="Hi")], timeout=5)
        assert create_mock(client).call_args.kwargs["timeout"] == 5

    def test_timeout_error(self, client):
        create_mock(client).side_effect = openai.APITimeoutError(request=REQUEST)
        with pytest.raises(LLMTimeoutError):
            client.chat([Message(role="user", content="Hi")])

    def test_connection_error(self, client):
        create_mock(client).side_effect = openai.APIConnectionError(request=REQUEST)
        with pytest.raises(LLMConnectionError):
            client.chat([Message(role="user", content="Hi")])

    def test_api_error(self, client):
        create_mock(client).side_effect = openai.APIError("boom", request=REQUEST, body=None)
        with pytest.raises(LLMError):
            client.chat([Message(role="user", content="Hi")])

    def test_empty_content(self, client):
        create_mock(client).return_value = completion("   ")
        with pytest.raises(LLMResponseError):
            client.chat([Message(role="user", content="Hi")])


class TestChatJson:
    """Tests for JSON replies."""

    def test_repairs_fenced_json(self, client):
        create_mock(client).return_value = completion('```json\n{"title": "T"}\n```')
        assert client.simple_json("system", "user") == {"title": "T"}

    def test_retry_after_unparseable_reply(self, client):
        create_mock(client).side_effect = [completion("I cannot do that"), completion('{"title": "T"}')]

        assert client.simple_json("system", "user") == {"title": "T"}

        retry_messages = create_mock(client).call_args.kwargs["messages"]
        assert retry_messages[-1]["role"] == "user"
        assert "I cannot do that" in retry_messages[-1]["content"]

    def test_gives_up_after_retry(self, client):
        create_mock(client).return_value = completion("still not json")
        with pytest.raises(LLMResponseError):
            client.simple_json("system", "user")
        assert create_mock(client).call_count == 2

    def test_array_is_not_an_object(self, client):
        create_mock(client).return_value = completion("[1, 2, 3]")
        with pytest.raises(LLMResponseError):
            client.chat_json([Message(role="user", content="Hi")], max_retries=0)

    def test_retry_gets_remaining_time(self, client):
        def reply(**kwargs):
            if create_mock(client).call_count == 1:
                time.sleep(0.05)
                return completion("not json yet")
            return completion('{"title": "T"}')

        create_mock(client).side_effect = reply

        assert client.simple_json("system", "user", timeout=10) == {"title": "T"}

        first, retry = create_mock(client).call_args_list
        assert first.kwargs["timeout"] == 10
        assert retry.kwargs["timeout"] < 9.96

    def test_no_retry_once_time_is_spent(self, client):
        def reply(**kwargs):
            time.sleep(kwargs["timeout"])
            return completion("not json")

        create_mock(client).side_effect = reply

        with pytest.raises(LLMTimeoutError):
            client.simple_json("system", "user", timeout=0.05)
        assert create_mock(client).call_count == 1

    def test_timeout_capped_by_config(self, client):
        create_mock(client).return_value = completion('{"title": "T"}')
        client.simple_json("system", "user", timeout=300)
        assert create_mock(client).call_args.kwargs["timeout"] == 45.0


class TestImages:
    """Tests for generate_image."""

    def test_returns_url(self, client):
        client._client.images.generate.return_value = SimpleNamespace(data=[SimpleNamespace(url="https://img/1.png")])
        assert client.generate_image("a cover", model="dall-e-3") == "https://img/1.png"

    def test_no_data(self, client):
        client._client.images.generate.return_value = SimpleNamespace(data=[])
        assert client.generate_image("a cover", model="dall-e-3") is None


class TestAvailability:
    """Tests for is_available."""

    def test_available(self, client):
        client._client.models.list.return_value = []
        assert client.is_available() is True

    def test_unreachable(self, client):
        client._client.models.list.side_effect = openai.APIConnectionError(request=REQUEST)
        assert client.is_available() is False
