"""Ordered provider fallback for LLM calls.

A ProviderChain holds one LLMClient per configured provider. Each call
tries the providers in order and returns the first success; a failing
provider is logged and the next one is tried. A timeout covers the whole
call, not each provider.

Usage:
    from thotnet.llm.chain import ProviderChain

    chain = ProviderChain.from_config(load_app_config())
    data = chain.simple_json(system_prompt, user_message, timeout=45)
"""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar

import structlog

from thotnet.config.app_config import AppConfig
from thotnet.llm.client import (
    LLMClient,
    LLMConfig,
    LLMError,
    LLMTimeoutError,
    ProvidersExhaustedError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ProviderChain:
    """Try each provider client in order until one succeeds."""

    def __init__(self, clients: list[LLMClient]):
        self.clients = list(clients)

    @classmethod
    def from_config(cls, config: AppConfig) -> ProviderChain:
        """Build clients for generation.provider_chain.

        Providers that need an API key but have none in the environment are
        skipped, as are names missing from the providers section.
        """
        clients = []
        for name in config.generation.provider_chain:
            provider = config.providers.get(name)
            if provider is None:
                logger.warning("provider_not_configured", provider=name)
                continue
            if provider.requires_key and not provider.get_api_key():
                logger.info("provider_skipped_no_key", provider=name, api_key_env=provider.api_key_env)
                continue
            clients.append(LLMClient(LLMConfig.from_provider(name, provider, config.generation)))

        logger.info("provider_chain_ready", providers=[c.provider for c in clients])
        return cls(clients)

    @property
    def providers(self) -> list[str]:
        return [client.provider for client in self.clients]

    def get_client(self, provider: str) -> LLMClient | None:
        for client in self.clients:
            if client.provider == provider:
                return client
        return None

    def _run(
        self,
        operation: str,
        timeout: float | None,
        call: Callable[[LLMClient, float | None], T],
    ) -> T:
        """Call each client in turn within one shared time budget.

        With a timeout, every attempt gets only what is left of it, and no
        further provider is tried once it is spent.
        """
        errors: list[tuple[str, str]] = []
        timeouts = 0
        expires_at = None if timeout is None else time.monotonic() + timeout

        for client in self.clients:
            budget = None
            if expires_at is not None:
                budget = expires_at - time.monotonic()
                if budget <= 0:
                    logger.warning(
                        "provider_chain_deadline_spent",
                        operation=operation,
                        timeout=timeout,
                        tried=[name for name, _ in errors],
                    )
                    raise LLMTimeoutError(f"Deadline of {timeout}s spent before trying {client.provider}")

            try:
                result = call(client, budget)
            except LLMTimeoutError as e:
                timeouts += 1
                errors.append((client.provider, str(e)))
                logger.warning("provider_timeout", operation=operation, provider=client.provider)
                continue
            except LLMError as e:
                errors.append((client.provider, str(e)))
                logger.warning("provider_failed", operation=operation, provider=client.provider, error=str(e))
                continue

            if errors:
                logger.info("provider_fallback_succeeded", operation=operation, provider=client.provider)
            return result

        if errors and timeouts == len(errors):
            raise LLMTimeoutError(f"All providers timed out: {', '.join(name for name, _ in errors)}")
        raise ProvidersExhaustedError(errors)

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """JSON-mode single-turn call with provider fallback.

        Raises:
            LLMTimeoutError: Every provider timed out, or the timeout was spent
            ProvidersExhaustedError: Every provider failed (or none configured)
        """
        return self._run(
            "simple_json",
            timeout,
            lambda client, budget: client.simple_json(
                system_prompt, user_message, max_tokens=max_tokens, timeout=budget
            ),
        )

    def simple_chat(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> str:
        return self._run(
            "simple_chat",
            timeout,
            lambda client, budget: client.simple_chat(
                system_prompt, user_message, max_tokens=max_tokens, timeout=budget
            ),
        )

    def is_available(self) -> bool:
        return any(client.is_available() for client in self.clients)
