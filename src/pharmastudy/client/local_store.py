"""On-device key/value store backing the local mode.

Each key holds one JSON-encoded value, all kept in a single file::

    {
      "token": "\"local-token-local-user-...\"",
      "chapters": "[{...}]",
      ...
    }

Values are encoded separately so one damaged value does not take the
others down with it: a missing or corrupt value reads as the caller's
default. A corrupt file reads as an empty store.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# =============================================================================
# KEYS
# =============================================================================

TOKEN_KEY = "token"
USER_KEY = "user"
CHAPTERS_KEY = "chapters"
FLASHCARDS_KEY = "flashcards"
QUIZZES_KEY = "quizzes"
USERS_KEY = "users"

ALL_KEYS = (TOKEN_KEY, USER_KEY, CHAPTERS_KEY, FLASHCARDS_KEY, QUIZZES_KEY, USERS_KEY)


class LocalStore:
    """JSON file with one encoded value per key."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.error("local_store.load_failed", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.error("local_store.invalid_format", path=str(self.path))
            return {}
        return data

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)

    # -------------------------------------------------------------------------
    # Raw access
    # -------------------------------------------------------------------------

    def get_raw(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_raw(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, *keys: str) -> None:
        data = self._load()
        for key in keys:
            data.pop(key, None)
        self._save(data)

    def clear(self) -> None:
        """Remove every known key."""
        self.remove(*ALL_KEYS)

    # -------------------------------------------------------------------------
    # Decoded access
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Decoded value of ``key``; ``default`` when missing or corrupt."""
        raw = self.get_raw(key)
        if raw is None:
            return default
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("local_store.corrupt_value", key=key, error=str(e))
            return default
        if default is not None and not isinstance(value, type(default)):
            logger.warning("local_store.unexpected_type", key=key, got=type(value).__name__)
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, ensure_ascii=False))

    def get_list(self, key: str) -> list[dict[str, Any]]:
        return self.get(key, [])

    # -------------------------------------------------------------------------
    # Session helpers
    # -------------------------------------------------------------------------

    def get_token(self) -> str | None:
        token = self.get(TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def set_session(self, token: str, user: dict[str, Any]) -> None:
        """Store the token and a snapshot of the logged-in user."""
        data = self._load()
        data[TOKEN_KEY] = json.dumps(token)
        data[USER_KEY] = json.dumps(user, ensure_ascii=False)
        self._save(data)

    def clear_session(self) -> None:
        self.remove(TOKEN_KEY, USER_KEY)

    def get_user(self) -> dict[str, Any] | None:
        return self.get(USER_KEY, {}) or None
