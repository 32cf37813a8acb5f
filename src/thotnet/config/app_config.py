"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml
(path overridable with THOTNET_CONFIG), falling back to built-in defaults.
A handful of environment variables override file values at load time.

Usage:
    from thotnet.config.app_config import load_app_config, get_provider_config

    config = load_app_config()
    provider = get_provider_config("groq")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ProviderConfig:
    """Configuration for a single OpenAI-compatible LLM provider."""

    base_url: str | None
    default_model: str
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """Get API key from environment variable."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None

    @property
    def requires_key(self) -> bool:
        return self.api_key_env is not None


@dataclass
class GenerationConfig:
    """Settings for LLM-backed course generation."""

    provider_chain: list[str] = field(default_factory=lambda: ["groq", "openai", "lmstudio"])
    timeout_seconds: float = 45.0
    temperature: float = 0.7
    max_tokens: int = 8000
    illustrations_enabled: bool = False
    image_model: str = "dall-e-3"


@dataclass
class DatabaseConfig:
    path: str = "db/thotnet.db"


@dataclass
class SiteConfig:
    """Public site settings and analytics access."""

    site_url: str = "http://localhost:3000"
    analytics_public: bool = False
    analytics_token_env: str = "THOTNET_ANALYTICS_TOKEN"

    def get_analytics_token(self) -> str | None:
        return os.environ.get(self.analytics_token_env) or None


@dataclass
class AppConfig:
    """Application-wide configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    site: SiteConfig = field(default_factory=SiteConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "providers": {
            "openai": {
                "base_url": None,
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
            "groq": {
                "base_url": "https://api.groq.com/openai/v1",
                "default_model": "llama-3.3-70b-versatile",
                "api_key_env": "GROQ_API_KEY",
            },
            "deepseek": {
                "base_url": "https://api.deepseek.com/v1",
                "default_model": "deepseek-chat",
                "api_key_env": "DEEPSEEK_API_KEY",
            },
            "mistral": {
                "base_url": "https://api.mistral.ai/v1",
                "default_model": "mistral-small-latest",
                "api_key_env": "MISTRAL_API_KEY",
            },
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
            },
            "ollama": {
                "base_url": "http://localhost:11434/v1",
                "default_model": "llama3.2",
                "api_key_env": None,
            },
        },
        "generation": {
            "provider_chain": ["groq", "openai", "lmstudio"],
            "timeout_seconds": 45,
            "temperature": 0.7,
            "max_tokens": 8000,
            "illustrations_enabled": False,
            "image_model": "dall-e-3",
        },
        "database": {"path": "db/thotnet.db"},
        "site": {
            "site_url": "http://localhost:3000",
            "analytics_public": False,
            "analytics_token_env": "THOTNET_ANALYTICS_TOKEN",
        },
    }


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply THOTNET_* environment variables on top of file values."""
    if db_path := os.environ.get("THOTNET_DB_PATH"):
        data["database"]["path"] = db_path
    if site_url := os.environ.get("THOTNET_SITE_URL"):
        data["site"]["site_url"] = site_url
    if (public := os.environ.get("THOTNET_ANALYTICS_PUBLIC")) is not None:
        data["site"]["analytics_public"] = public.strip().lower() in _TRUTHY
    return data


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    providers = {}
    for name, pconfig in data.get("providers", {}).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
        )

    gen_data = data.get("generation", {})
    generation = GenerationConfig(
        provider_chain=list(gen_data.get("provider_chain", ["groq", "openai", "lmstudio"])),
        timeout_seconds=float(gen_data.get("timeout_seconds", 45)),
        temperature=float(gen_data.get("temperature", 0.7)),
        max_tokens=int(gen_data.get("max_tokens", 8000)),
        illustrations_enabled=bool(gen_data.get("illustrations_enabled", False)),
        image_model=gen_data.get("image_model", "dall-e-3"),
    )

    db_data = data.get("database", {})
    database = DatabaseConfig(path=db_data.get("path", "db/thotnet.db"))

    site_data = data.get("site", {})
    site = SiteConfig(
        site_url=site_data.get("site_url", "http://localhost:3000"),
        analytics_public=bool(site_data.get("analytics_public", False)),
        analytics_token_env=site_data.get("analytics_token_env", "THOTNET_ANALYTICS_TOKEN"),
    )

    return AppConfig(providers=providers, generation=generation, database=database, site=site)


def _config_file() -> Path:
    override = os.environ.get("THOTNET_CONFIG")
    return Path(override) if override else CONFIG_FILE


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, merged over defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data = _get_defaults()
    config_file = _config_file()

    if config_file.exists():
        logger.debug("loading_app_config", source=str(config_file))
        file_data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        data = _merge(data, file_data)
    else:
        logger.info("using_default_config")

    _cached_config = _parse_config(_apply_env_overrides(data))
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Get configuration for a specific provider.

    Args:
        provider: Provider name (e.g., "groq", "lmstudio")

    Returns:
        ProviderConfig or None if provider not found.
    """
    config = load_app_config()
    return config.providers.get(provider)


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
