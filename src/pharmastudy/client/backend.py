"""Operations every data-access backend provides.

``RemoteBackend`` and ``LocalBackend`` implement the same methods and
return the same pydantic models, so ``StudyClient`` can redo any call on
the local store without converting results.
"""

from __future__ import annotations

from typing import Protocol

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


class StudyBackend(Protocol):
    # Auth
    def register(self, name: str, email: str, password: str) -> AuthResponse: ...

    def login(self, email: str, password: str) -> AuthResponse: ...

    def me(self) -> MeResponse: ...

    # Chapters
    def list_chapters(self) -> list[ChapterResponse]: ...

    def create_chapter(self, data: ChapterCreate) -> ChapterResponse: ...

    def update_chapter(self, chapter_id: str, data: ChapterUpdate) -> ChapterResponse: ...

    def delete_chapter(self, chapter_id: str) -> MessageResponse: ...

    # Topics
    def create_topic(self, chapter_id: str, data: TopicCreate) -> TopicResponse: ...

    def update_topic(self, topic_id: str, data: TopicUpdate) -> TopicResponse: ...

    def delete_topic(self, topic_id: str) -> MessageResponse: ...

    # Items
    def create_item(self, topic_id: str, data: ItemCreate) -> ItemResponse: ...

    def update_item(self, item_id: str, data: ItemUpdate) -> ItemResponse: ...

    def delete_item(self, item_id: str) -> MessageResponse: ...

    def upload_image(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> UploadResponse: ...

    # Flashcards
    def list_flashcards(self) -> list[FlashcardEntry]: ...

    def create_flashcard(self, data: FlashcardCreate) -> FlashcardResponse: ...

    def update_flashcard(self, flashcard_id: str, data: FlashcardUpdate) -> FlashcardResponse: ...

    def delete_flashcard(self, flashcard_id: str) -> MessageResponse: ...

    # Search
    def search(self, query: str, item_type: str | None = None) -> SearchResponse: ...
