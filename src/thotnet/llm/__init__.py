"""LLM provider clients and the fallback chain used for course generation."""

from thotnet.llm.chain import ProviderChain
from thotnet.llm.client import (
    LLMClient,
    LLMConfig,
    LLMConnectionError,
    LLMError,
    LLMResponse,
    LLMResponseError,
    LLMTimeoutError,
    Message,
    ProvidersExhaustedError,
)

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMConnectionError",
    "LLMError",
    "LLMResponse",
    "LLMResponseError",
    "LLMTimeoutError",
    "Message",
    "ProviderChain",
    "ProvidersExhaustedError",
]
