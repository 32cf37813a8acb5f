"""LLM client for OpenAI-compatible providers.

One client talks to one provider (OpenAI, Groq, DeepSeek, Mistral, or a
local LM Studio / Ollama server) through the openai SDK. ProviderChain in
thotnet.llm.chain strings several clients together.

Usage:
    from thotnet.llm.client import LLMClient, LLMConfig

    client = LLMClient(LLMConfig.from_provider("groq"))
    data = client.simple_json(system_prompt, user_message)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal

import openai
import structlog
from openai import OpenAI

from thotnet.config.app_config import GenerationConfig, ProviderConfig, get_provider_config, load_app_config
from thotnet.utils.json_fixer import JSONRepairError, loads_llm_json

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

# Local servers accept any key
LOCAL_API_KEY = "not-needed"

# Providers whose chat endpoint accepts {"type": "json_object"}
PROVIDER_CAPABILITIES_DEFAULTS: dict[str, dict[str, bool]] = {
    "openai": {"supports_json_object": True},
    "groq": {"supports_json_object": True},
    "deepseek": {"supports_json_object": True},
    "mistral": {"supports_json_object": True},
    "lmstudio": {"supports_json_object": False},
    "ollama": {"supports_json_object": False},
}

JSON_REPAIR_PROMPT = """Fix the following text and return ONLY valid JSON:
<<<
{invalid_output}
>>>

Reply with the corrected JSON only, no explanations and no markdown."""


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for a single provider client."""

    provider: str = "lmstudio"
    base_url: str | None = "http://localhost:1234/v1"
    model: str = "default"
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: float = 45.0
    api_key: str | None = None
    # Capability override
    supports_json_object: bool | None = None

    @classmethod
    def from_provider(
        cls,
        name: str,
        provider: ProviderConfig | None = None,
        generation: GenerationConfig | None = None,
    ) -> LLMConfig:
        """Build a client config from the app config's provider section.

        Args:
            name: Provider name, e.g. "groq"
            provider: Provider settings (looked up by name if not given)
            generation: Generation defaults (loaded from app config if not given)

        Raises:
            KeyError: Provider is not configured
        """
        if provider is None:
            provider = get_provider_config(name)
        if provider is None:
            raise KeyError(f"Unknown LLM provider: {name}")
        if generation is None:
            generation = load_app_config().generation

        return cls(
            provider=name,
            base_url=provider.base_url,
            model=provider.default_model,
            temperature=generation.temperature,
            max_tokens=generation.max_tokens,
            timeout=generation.timeout_seconds,
            api_key=provider.get_api_key(),
        )


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from a provider."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """Error during LLM interaction."""

    pass


class LLMConnectionError(LLMError):
    """Could not reach the provider."""

    pass


class LLMResponseError(LLMError):
    """Provider answered with empty or unusable output."""

    pass


class LLMTimeoutError(LLMError):
    """Provider did not answer within the timeout."""

    pass


class ProvidersExhaustedError(LLMError):
    """Every provider in a chain failed.

    Attributes:
        errors: (provider, error message) per attempted provider
    """

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = errors
        if errors:
            summary = "; ".join(f"{name}: {message}" for name, message in errors)
        else:
            summary = "no provider configured"
        super().__init__(f"All LLM providers failed ({summary})")


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Client for one OpenAI-compatible provider."""

    def __init__(self, config: LLMConfig | None = None):
        """Initialize the client.

        Args:
            config: Provider configuration (defaults to a local LM Studio server)
        """
        self.config = config or LLMConfig()

        # Retries are the chain's job
        self._client = OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key or LOCAL_API_KEY,
            timeout=self.config.timeout,
            max_retries=0,
        )

        logger.info(
            "llm_client_initialized",
            provider=self.config.provider,
            model=self.config.model,
            base_url=self.config.base_url,
        )

    @property
    def provider(self) -> str:
        return self.config.provider

    def _supports_json_object(self) -> bool:
        if self.config.supports_json_object is not None:
            return self.config.supports_json_object
        caps = PROVIDER_CAPABILITIES_DEFAULTS.get(self.config.provider, {})
        return caps.get("supports_json_object", False)

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
        timeout: float | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: Conversation so far
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: Request JSON output (only where the provider supports it)
            timeout: Seconds left for this call, capped at the configured timeout

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMTimeoutError: No answer within the timeout
            LLMConnectionError: Provider unreachable
            LLMResponseError: Empty response
            LLMError: Any other API error
        """
        request_kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
            "timeout": self.config.timeout if timeout is None else min(timeout, self.config.timeout),
        }
        if json_mode and self._supports_json_object():
            request_kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()

        # APITimeoutError subclasses APIConnectionError, so it goes first
        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(f"{self.config.provider} timed out after {request_kwargs['timeout']}s") from e
        except openai.APIConnectionError as e:
            raise LLMConnectionError(
                f"Could not connect to {self.config.provider} at {self.config.base_url}: {e}"
            ) from e
        except openai.APIError as e:
            raise LLMError(f"{self.config.provider} request failed: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise LLMResponseError(f"Empty response from {self.config.provider}")

        content = response.choices[0].message.content or ""
        if not content.strip():
            raise LLMResponseError(f"Empty response from {self.config.provider}")

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(
            "llm_response",
            provider=self.config.provider,
            model=response.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=latency_ms,
        )

    def chat_json(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        max_retries: int = 1,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send a chat request expecting a JSON object back.

        The reply goes through the JSON repair pipeline. If it still can't
        be parsed, the model is asked once to fix its own output. With a
        timeout, the repair request only gets what the first request left.

        Raises:
            LLMTimeoutError: No answer in time, or no time left to repair
            LLMResponseError: No valid JSON object after retries
        """
        started = time.monotonic()
        response = self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            timeout=timeout,
        )

        parsed = self._try_parse_json(response.content)
        if parsed is not None:
            return parsed

        if max_retries > 0:
            logger.warning(
                "json_parse_failed_retrying",
                content=response.content[:100],
                provider=self.config.provider,
            )

            repair_prompt = JSON_REPAIR_PROMPT.format(invalid_output=response.content[:1000])
            retry_messages = messages + [
                Message(role="assistant", content=response.content),
                Message(role="user", content=repair_prompt),
            ]

            retry_timeout = None
            if timeout is not None:
                retry_timeout = timeout - (time.monotonic() - started)
                if retry_timeout <= 0:
                    raise LLMTimeoutError(f"{self.config.provider} used its {timeout}s before the JSON repair retry")

            retry_response = self.chat(
                retry_messages,
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
                timeout=retry_timeout,
            )

            parsed = self._try_parse_json(retry_response.content)
            if parsed is not None:
                logger.info("json_parse_recovered_after_retry", provider=self.config.provider)
                return parsed

        raise LLMResponseError(f"No valid JSON from {self.config.provider}: {response.content[:200]}...")

    def _try_parse_json(self, content: str) -> dict[str, Any] | None:
        try:
            parsed = loads_llm_json(content, context=self.config.provider)
        except JSONRepairError:
            return None
        return parsed if isinstance(parsed, dict) else None

    def simple_chat(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> str:
        """Single-turn chat returning the reply text."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        response = self.chat(messages, temperature=temperature, max_tokens=max_tokens, timeout=timeout)
        return response.content

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Single-turn chat returning a parsed JSON object."""
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]
        return self.chat_json(messages, temperature=temperature, max_tokens=max_tokens, timeout=timeout)

    def generate_image(self, prompt: str, model: str, size: str = "1792x1024") -> str | None:
        """Generate one image and return its URL (None if the provider gave none).

        Raises:
            LLMError: API failure
        """
        try:
            result = self._client.images.generate(model=model, prompt=prompt, size=size, n=1)
        except openai.APIError as e:
            raise LLMError(f"{self.config.provider} image generation failed: {e}") from e

        if not result.data:
            return None
        return result.data[0].url

    def is_available(self) -> bool:
        """Check whether the provider answers a models listing."""
        try:
            self._client.models.list()
            return True
        except openai.APIError:
            return False
