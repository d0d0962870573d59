"""HTTP backend talking to the PharmaStudy API.

Every failure (transport error, timeout, non-2xx status, unparsable body)
is raised as ``RemoteError``; the caller decides whether to fall back.
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from pharmastudy.client.errors import RemoteError
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
    SearchResponse,
    TopicCreate,
    TopicResponse,
    TopicUpdate,
    UploadResponse,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Request failed: {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error") or body.get("message")
        if isinstance(detail, str):
            return detail
    return f"Request failed: {response.status_code}"


class RemoteBackend:
    """Backend calling the REST API with the stored bearer token."""

    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ):
        """Initialize remote backend.

        Args:
            base_url: API root, e.g. http://localhost:8000
            token_provider: Returns the current token (None = anonymous)
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests)
            client: Preconfigured httpx client; its own base_url is used as is
        """
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider or (lambda: None)
        self._client = client or httpx.Client(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

        logger.info("remote_backend_initialized", base_url=self.base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("remote.transport_error", method=method, path=path, error=str(e))
            raise RemoteError(f"Could not reach {self.base_url}: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.info(
                "remote.request_failed",
                method=method,
                path=path,
                status=response.status_code,
                error=message,
            )
            raise RemoteError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"Invalid JSON from {path}", status_code=response.status_code) from e

    def _parse(self, model: type[BaseModel], data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RemoteError(f"Unexpected response shape for {model.__name__}") from e

    def _parse_list(self, model: type[BaseModel], data: Any) -> list:
        if not isinstance(data, list):
            raise RemoteError(f"Expected a list of {model.__name__}")
        return [self._parse(model, entry) for entry in data]

    # =========================================================================
    # AUTH
    # =========================================================================

    def register(self, name: str, email: str, password: str) -> AuthResponse:
        data = self._request(
            "POST", "/auth/register", json={"name": name, "email": email, "password": password}
        )
        return self._parse(AuthResponse, data)

    def login(self, email: str, password: str) -> AuthResponse:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._parse(AuthResponse, data)

    def me(self) -> MeResponse:
        return self._parse(MeResponse, self._request("GET", "/auth/me"))

    # =========================================================================
    # CHAPTERS / TOPICS / ITEMS
    # =========================================================================

    def list_chapters(self) -> list[ChapterResponse]:
        return self._parse_list(ChapterResponse, self._request("GET", "/chapters"))

    def create_chapter(self, data: ChapterCreate) -> ChapterResponse:
        body = self._request("POST", "/chapters", json=data.model_dump(mode="json"))
        return self._parse(ChapterResponse, body)

    def update_chapter(self, chapter_id: str, data: ChapterUpdate) -> ChapterResponse:
        body = self._request(
            "PUT", f"/chapters/{chapter_id}", json=data.model_dump(mode="json", exclude_unset=True)
        )
        return self._parse(ChapterResponse, body)

    def delete_chapter(self, chapter_id: str) -> MessageResponse:
        return self._parse(MessageResponse, self._request("DELETE", f"/chapters/{chapter_id}"))

    def create_topic(self, chapter_id: str, data: TopicCreate) -> TopicResponse:
        body = self._request("POST", f"/topics/{chapter_id}", json=data.model_dump(mode="json"))
        return self._parse(TopicResponse, body)

    def update_topic(self, topic_id: str, data: TopicUpdate) -> TopicResponse:
        body = self._request(
            "PUT", f"/topics/{topic_id}", json=data.model_dump(mode="json", exclude_unset=True)
        )
        return self._parse(TopicResponse, body)

    def delete_topic(self, topic_id: str) -> MessageResponse:
        return self._parse(MessageResponse, self._request("DELETE", f"/topics/{topic_id}"))

    def create_item(self, topic_id: str, data: ItemCreate) -> ItemResponse:
        body = self._request("POST", f"/items/{topic_id}", json=data.model_dump(mode="json"))
        return self._parse(ItemResponse, body)

    def update_item(self, item_id: str, data: ItemUpdate) -> ItemResponse:
        body = self._request(
            "PUT", f"/items/{item_id}", json=data.model_dump(mode="json", exclude_unset=True)
        )
        return self._parse(ItemResponse, body)

    def delete_item(self, item_id: str) -> MessageResponse:
        return self._parse(MessageResponse, self._request("DELETE", f"/items/{item_id}"))

    def upload_image(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> UploadResponse:
        files = {"image": (filename, content, content_type or "application/octet-stream")}
        return self._parse(UploadResponse, self._request("POST", "/items/upload", files=files))

    # =========================================================================
    # FLASHCARDS / SEARCH
    # =========================================================================

    def list_flashcards(self) -> list[FlashcardEntry]:
        return self._parse_list(FlashcardEntry, self._request("GET", "/flashcards"))

    def create_flashcard(self, data: FlashcardCreate) -> FlashcardResponse:
        body = self._request("POST", "/flashcards", json=data.model_dump(mode="json"))
        return self._parse(FlashcardResponse, body)

    def update_flashcard(self, flashcard_id: str, data: FlashcardUpdate) -> FlashcardResponse:
        body = self._request(
            "PUT",
            f"/flashcards/{flashcard_id}",
            json=data.model_dump(mode="json", exclude_unset=True),
        )
        return self._parse(FlashcardResponse, body)

    def delete_flashcard(self, flashcard_id: str) -> MessageResponse:
        return self._parse(MessageResponse, self._request("DELETE", f"/flashcards/{flashcard_id}"))

    def search(self, query: str, item_type: str | None = None) -> SearchResponse:
        params = {"q": query}
        if item_type:
            params["type"] = item_type
        return self._parse(SearchResponse, self._request("GET", "/search", params=params))
