"""Configuration package for PharmaStudy."""

from pharmastudy.config.app_config import (
    ApiConfig,
    AppConfig,
    ClientConfig,
    ServerConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "ApiConfig",
    "AppConfig",
    "ClientConfig",
    "ServerConfig",
    "clear_config_cache",
    "load_app_config",
]
