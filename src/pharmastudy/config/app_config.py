"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults. Environment variables override the
file so deployments can point the client at a backend without editing it.

Usage:
    from pharmastudy.config.app_config import load_app_config

    config = load_app_config()
    if config.api.is_configured:
        ...
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

# Environment overrides: variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PHARMASTUDY_API_URL": ("api", "base_url"),
    "PHARMASTUDY_DATABASE_URL": ("server", "database_url"),
    "PHARMASTUDY_SECRET_KEY": ("server", "secret_key"),
    "PHARMASTUDY_MEDIA_DIR": ("server", "media_dir"),
    "PHARMASTUDY_LOCAL_STORE": ("client", "store_path"),
}


@dataclass
class ApiConfig:
    """Where the client finds the REST API.

    An empty base_url means local-only mode.
    """

    base_url: str | None = None
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)


@dataclass
class ServerConfig:
    """Settings for the REST API process."""

    database_url: str = "sqlite:///db/pharmastudy.db"
    secret_key: str = "change-me"
    token_expire_minutes: int = 60 * 24 * 7
    media_dir: str = "data/media"
    media_url_prefix: str = "/media"
    max_upload_bytes: int = 5 * 1024 * 1024


@dataclass
class ClientConfig:
    """Settings for the on-device record store."""

    store_path: str = "data/state/local_store_v1.json"


@dataclass
class AppConfig:
    """Application-wide configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "api": {
            "base_url": None,
            "timeout": 10.0,
        },
        "server": {
            "database_url": "sqlite:///db/pharmastudy.db",
            "secret_key": "change-me",
            "token_expire_minutes": 60 * 24 * 7,
            "media_dir": "data/media",
            "media_url_prefix": "/media",
            "max_upload_bytes": 5 * 1024 * 1024,
        },
        "client": {
            "store_path": "data/state/local_store_v1.json",
        },
    }


def _merge_defaults(data: dict[str, Any]) -> dict[str, Any]:
    """Fill sections missing from the file with defaults."""
    result = _get_defaults()
    for section, values in (data or {}).items():
        if section in result and isinstance(values, dict):
            result[section].update(values)
    return result


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply PHARMASTUDY_* environment variables on top of file values."""
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][key] = value or None
            logger.debug("config.env_override", variable=env_var)
    return data


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    api_data = data.get("api", {})
    api = ApiConfig(
        base_url=(api_data.get("base_url") or None),
        timeout=float(api_data.get("timeout", 10.0)),
    )
    if api.base_url:
        api.base_url = api.base_url.rstrip("/")

    server_data = data.get("server", {})
    server = ServerConfig(
        database_url=server_data.get("database_url") or ServerConfig.database_url,
        secret_key=server_data.get("secret_key") or ServerConfig.secret_key,
        token_expire_minutes=int(server_data.get("token_expire_minutes", 60 * 24 * 7)),
        media_dir=server_data.get("media_dir") or ServerConfig.media_dir,
        media_url_prefix=server_data.get("media_url_prefix", "/media"),
        max_upload_bytes=int(server_data.get("max_upload_bytes", 5 * 1024 * 1024)),
    )

    client_data = data.get("client", {})
    client = ClientConfig(
        store_path=client_data.get("store_path") or ClientConfig.store_path,
    )

    return AppConfig(api=api, server=server, client=client)


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = _merge_defaults(yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")))
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(_apply_env_overrides(data))
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
