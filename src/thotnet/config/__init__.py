"""Configuration package for ThotNet."""

from thotnet.config.app_config import (
    AppConfig,
    DatabaseConfig,
    GenerationConfig,
    ProviderConfig,
    SiteConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "GenerationConfig",
    "ProviderConfig",
    "SiteConfig",
    "clear_config_cache",
    "get_provider_config",
    "load_app_config",
]
