"""Study client: one entry point for every data operation.

Each call is tried against the remote API when one is configured, using
the stored token. If that call fails for any transport or HTTP reason the
same call is redone against the local store. The decision is taken per
call; nothing pins the session to one mode, and records written locally
during an outage are not pushed to the server afterwards.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

import structlog

from pharmastudy.client.errors import RemoteError
from pharmastudy.client.local_backend import LOCAL_TOKEN_PREFIX, LocalBackend
from pharmastudy.client.local_store import CHAPTERS_KEY, LocalStore
from pharmastudy.client.remote_backend import RemoteBackend
from pharmastudy.config.app_config import AppConfig, load_app_config
from pharmastudy.core import quiz
from pharmastudy.web.schemas import (
    AuthResponse,
    ChapterCreate,
    ChapterResponse,
    ChapterUpdate,
    FlashcardCreate,
    FlashcardEntry,
    FlashcardResponse,
    FlashcardUpdate,
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    MeResponse,
    MessageResponse,
    QuizResult,
    SearchResponse,
    TopicCreate,
    TopicResponse,
    TopicUpdate,
    UploadResponse,
    UserResponse,
)

logger = structlog.get_logger(__name__)


@dataclass
class ClientStatus:
    """Diagnostics for the status command."""

    api_url: str | None
    api_configured: bool
    logged_in: bool
    local_token: bool
    user_email: str | None
    local_users: int
    local_chapters: int
    store_path: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_url": self.api_url,
            "api_configured": self.api_configured,
            "logged_in": self.logged_in,
            "local_token": self.local_token,
            "user_email": self.user_email,
            "local_users": self.local_users,
            "local_chapters": self.local_chapters,
            "store_path": self.store_path,
        }


class StudyClient:
    """Data-access facade with per-call remote-then-local fallback."""

    def __init__(
        self,
        config: AppConfig | None = None,
        store: LocalStore | None = None,
        remote: RemoteBackend | None = None,
    ):
        """Initialize the client.

        Args:
            config: App configuration (loads from YAML/env if not provided)
            store: Local store (defaults to config.client.store_path)
            remote: Remote backend override (tests); built from config.api otherwise
        """
        if config is None:
            config = load_app_config()
        self.config = config
        self.store = store or LocalStore(config.client.store_path)
        self.local = LocalBackend(self.store)

        if remote is None and config.api.is_configured:
            remote = RemoteBackend(
                config.api.base_url,
                token_provider=self.store.get_token,
                timeout=config.api.timeout,
            )
        self.remote = remote

    def _call(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Run ``operation`` remotely if possible, locally otherwise."""
        if self.remote is not None:
            try:
                return getattr(self.remote, operation)(*args, **kwargs)
            except RemoteError as e:
                logger.warning(
                    "client.fallback",
                    operation=operation,
                    status=e.status_code,
                    error=str(e),
                )
        return getattr(self.local, operation)(*args, **kwargs)

    # =========================================================================
    # AUTH
    # =========================================================================

    def _remember(self, auth: AuthResponse) -> AuthResponse:
        self.store.set_session(auth.token, auth.user.model_dump(mode="json"))
        return auth

    def register(self, name: str, email: str, password: str) -> AuthResponse:
        """Create an account and keep its token for later calls."""
        return self._remember(self._call("register", name, email, password))

    def login(self, email: str, password: str) -> AuthResponse:
        """Log in and keep the token for later calls."""
        return self._remember(self._call("login", email, password))

    def me(self) -> MeResponse:
        return self._call("me")

    def logout(self) -> None:
        """Forget the token and user snapshot. Local data stays on disk."""
        self.store.clear_session()
        logger.info("client.logged_out")

    # =========================================================================
    # CONTENT
    # =========================================================================

    def list_chapters(self) -> list[ChapterResponse]:
        return self._call("list_chapters")

    def create_chapter(self, data: ChapterCreate) -> ChapterResponse:
        return self._call("create_chapter", data)

    def update_chapter(self, chapter_id: str, data: ChapterUpdate) -> ChapterResponse:
        return self._call("update_chapter", chapter_id, data)

    def delete_chapter(self, chapter_id: str) -> MessageResponse:
        return self._call("delete_chapter", chapter_id)

    def create_topic(self, chapter_id: str, data: TopicCreate) -> TopicResponse:
        return self._call("create_topic", chapter_id, data)

    def update_topic(self, topic_id: str, data: TopicUpdate) -> TopicResponse:
        return self._call("update_topic", topic_id, data)

    def delete_topic(self, topic_id: str) -> MessageResponse:
        return self._call("delete_topic", topic_id)

    def create_item(self, topic_id: str, data: ItemCreate) -> ItemResponse:
        return self._call("create_item", topic_id, data)

    def update_item(self, item_id: str, data: ItemUpdate) -> ItemResponse:
        return self._call("update_item", item_id, data)

    def delete_item(self, item_id: str) -> MessageResponse:
        return self._call("delete_item", item_id)

    def upload_image(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> UploadResponse:
        return self._call("upload_image", filename, content, content_type)

    def list_flashcards(self) -> list[FlashcardEntry]:
        return self._call("list_flashcards")

    def create_flashcard(self, data: FlashcardCreate) -> FlashcardResponse:
        return self._call("create_flashcard", data)

    def update_flashcard(self, flashcard_id: str, data: FlashcardUpdate) -> FlashcardResponse:
        return self._call("update_flashcard", flashcard_id, data)

    def delete_flashcard(self, flashcard_id: str) -> MessageResponse:
        return self._call("delete_flashcard", flashcard_id)

    def search(self, query: str, item_type: str | None = None) -> SearchResponse:
        return self._call("search", query, item_type)

    # =========================================================================
    # QUIZ
    # =========================================================================

    def generate_quiz(
        self,
        chapter_id: str | None = None,
        topic_id: str | None = None,
        rng: random.Random | None = None,
    ) -> list[quiz.QuizQuestion]:
        """Build a quiz session from the current chapter tree."""
        return quiz.generate_questions(
            self.list_chapters(), chapter_id=chapter_id, topic_id=topic_id, rng=rng
        )

    def record_quiz_result(
        self,
        total: int,
        correct: int,
        chapter_id: str | None = None,
        topic_id: str | None = None,
    ) -> QuizResult:
        return self.local.record_quiz_result(total, correct, chapter_id, topic_id)

    def list_quiz_results(self) -> list[QuizResult]:
        return self.local.list_quiz_results()

    # =========================================================================
    # LOCAL DIAGNOSTICS
    # =========================================================================

    def list_local_users(self) -> list[UserResponse]:
        return self.local.list_users()

    def delete_local_user(self, user_id: str) -> MessageResponse:
        return self.local.delete_user(user_id)

    def clear_local_data(self) -> None:
        """Wipe every local account, chapter, flashcard, quiz result and the session."""
        self.store.clear()
        logger.info("client.local_data_cleared", store_path=str(self.store.path))

    def seed_sample_chapters(self) -> list[ChapterResponse]:
        return self.local.seed_sample_chapters()

    def status(self) -> ClientStatus:
        token = self.store.get_token()
        user = self.store.get_user()
        return ClientStatus(
            api_url=self.config.api.base_url,
            api_configured=self.config.api.is_configured,
            logged_in=token is not None,
            local_token=bool(token and token.startswith(LOCAL_TOKEN_PREFIX)),
            user_email=user.get("email") if user else None,
            local_users=len(self.local.list_users()),
            local_chapters=len(self.store.get_list(CHAPTERS_KEY)),
            store_path=str(self.store.path),
        )
