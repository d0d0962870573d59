"""Local backend: every API operation served from the on-device store.

Responsibilities:
- Local accounts (ids ``local-user-...``, tokens ``local-token-<user id>``)
- Chapter tree stored inline under the ``chapters`` key, scoped to the
  logged-in user, with max + 1 ordering and cascading deletes
- Flashcards stored under their own key and joined onto items on read
- Search with the same rules and limits as the API
- Image "upload" as an inline data: URI
- Sample chapters and the local quiz history

Local passwords are stored in cleartext. This mode exists for offline use
and demos on a single device and must not hold real credentials.
"""

from __future__ import annotations

import base64
import mimetypes
import uuid
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any

import structlog
from pydantic import ValidationError

from pharmastudy.client.errors import AuthError, ClientError, ConflictError, NotFoundError
from pharmastudy.client.local_store import (
    CHAPTERS_KEY,
    FLASHCARDS_KEY,
    QUIZZES_KEY,
    USERS_KEY,
    LocalStore,
)
from pharmastudy.core.media import ALLOWED_EXTENSIONS
from pharmastudy.core.search import (
    MAX_CHAPTER_RESULTS,
    MAX_ITEM_RESULTS,
    MAX_TOPIC_RESULTS,
    contains,
    item_matches,
    normalize_query,
)
from pharmastudy.web.schemas import (
    AuthResponse,
    ChapterCreate,
    ChapterResponse,
    ChapterSummary,
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
    RegisterRequest,
    SearchResponse,
    TopicCreate,
    TopicResponse,
    TopicSummary,
    TopicUpdate,
    UploadResponse,
    UserResponse,
    patch_fields,
)

logger = structlog.get_logger(__name__)

LOCAL_TOKEN_PREFIX = "local-token-"

# Introductory pharmacology course written by seed_sample_chapters()
SAMPLE_CHAPTERS: list[dict[str, Any]] = [
    {
        "name": "Introduction to Pharmacology",
        "description": "Definitions, routes of administration, and the basics of drug action.",
        "topics": [
            ("Definition and Scope", "What is pharmacology and its branches."),
            ("Routes of Administration", "Different ways drugs enter the body."),
        ],
    },
    {
        "name": "Pharmacokinetics",
        "description": "Absorption, distribution, metabolism, excretion, and how timing changes outcomes.",
        "topics": [
            ("Drug Absorption", "How drugs enter the bloodstream."),
            ("Drug Distribution", "How drugs travel through the body."),
            ("Drug Metabolism", "How drugs are transformed in the body."),
        ],
    },
    {
        "name": "Pharmacodynamics",
        "description": "How drugs produce their effects on the body.",
        "topics": [
            ("Receptor Theory", "Agonists, antagonists, partial agonists, and inverse agonists."),
            ("Signal Transduction", "G-proteins, second messengers, and downstream effects."),
        ],
    },
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id(kind: str) -> str:
    return f"local-{kind}-{uuid.uuid4().hex[:12]}"


def _public_user(record: dict[str, Any]) -> UserResponse:
    # Only the public fields; the stored password is dropped here
    return UserResponse.model_validate(record)


def _records(value: Any, kind: str) -> list[dict[str, Any]]:
    """Stored records of one kind, without entries that are not objects with an id."""
    if not isinstance(value, list):
        if value is not None:
            logger.warning("local.invalid_record", kind=kind, reason="not a list")
        return []
    kept = [r for r in value if isinstance(r, dict) and isinstance(r.get("id"), str)]
    if len(kept) != len(value):
        logger.warning("local.invalid_record", kind=kind, dropped=len(value) - len(kept))
    return kept


def _order_of(record: dict[str, Any]) -> int:
    order = record.get("order")
    return order if isinstance(order, int) else 0


def _by_order(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=lambda r: (_order_of(r), str(r.get("created_at", ""))))


def _by_created(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(records, key=lambda r: str(r.get("created_at", "")))


class LocalBackend:
    """Backend serving every operation from a ``LocalStore``."""

    def __init__(self, store: LocalStore):
        self.store = store

    # =========================================================================
    # SCOPE HELPERS
    # =========================================================================

    def _current_user_id(self) -> str | None:
        """Id of the logged-in user, from the token or the stored user snapshot."""
        token = self.store.get_token()
        if token and token.startswith(LOCAL_TOKEN_PREFIX):
            return token[len(LOCAL_TOKEN_PREFIX):]
        user = self.store.get_user()
        return user.get("id") if user else None

    def _load_tree(self) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """All stored chapters, and the subset owned by the current user."""
        chapters = _records(self.store.get_list(CHAPTERS_KEY), "chapter")
        for chapter in chapters:
            chapter["topics"] = _records(chapter.get("topics"), "topic")
            for topic in chapter["topics"]:
                topic["items"] = _records(topic.get("items"), "item")
                for item in topic["items"]:
                    properties = item.get("properties") or []
                    item["properties"] = [p for p in properties if isinstance(p, dict)]
        user_id = self._current_user_id()
        owned = [c for c in chapters if c.get("user_id") == user_id]
        return chapters, owned

    def _save_tree(self, chapters: list[dict[str, Any]]) -> None:
        self.store.set(CHAPTERS_KEY, chapters)

    def _find_chapter(self, owned: list[dict[str, Any]], chapter_id: str) -> dict[str, Any]:
        for chapter in owned:
            if chapter.get("id") == chapter_id:
                return chapter
        raise NotFoundError("Chapter not found")

    def _find_topic(self, owned: list[dict[str, Any]], topic_id: str):
        for chapter in owned:
            for topic in chapter.get("topics", []):
                if topic.get("id") == topic_id:
                    return chapter, topic
        raise NotFoundError("Topic not found")

    def _find_item(self, owned: list[dict[str, Any]], item_id: str):
        for chapter in owned:
            for topic in chapter.get("topics", []):
                for item in topic.get("items", []):
                    if item.get("id") == item_id:
                        return chapter, topic, item
        raise NotFoundError("Item not found")

    def _owned_item_ids(self, owned: list[dict[str, Any]]) -> set[str]:
        return {
            item["id"]
            for chapter in owned
            for topic in chapter.get("topics", [])
            for item in topic.get("items", [])
        }

    def _cards(self) -> list[dict[str, Any]]:
        return _records(self.store.get_list(FLASHCARDS_KEY), "flashcard")

    def _prune_flashcards(self, item_ids: set[str]) -> None:
        if not item_ids:
            return
        cards = self._cards()
        kept = [c for c in cards if c.get("item_id") not in item_ids]
        if len(kept) != len(cards):
            self.store.set(FLASHCARDS_KEY, kept)

    # =========================================================================
    # RESPONSE BUILDERS
    # =========================================================================

    def _cards_by_item(self) -> dict[str, dict[str, Any]]:
        cards = {}
        for card in self._cards():
            try:
                FlashcardResponse.model_validate(card)
            except ValidationError:
                logger.warning("local.invalid_record", kind="flashcard", record_id=card["id"])
                continue
            cards[card["item_id"]] = card
        return cards

    def _valid(self, build, records: list[dict[str, Any]], kind: str) -> list:
        """Build a response per record, skipping records that fail validation."""
        responses = []
        for record in records:
            try:
                responses.append(build(record))
            except ValidationError:
                logger.warning("local.invalid_record", kind=kind, record_id=record.get("id"))
        return responses

    def _item_response(self, item: dict, chapter_id: str, cards: dict) -> ItemResponse:
        return ItemResponse.model_validate(
            {**item, "chapter_id": chapter_id, "flashcard": cards.get(item["id"])}
        )

    def _topic_response(self, topic: dict, chapter_id: str, cards: dict) -> TopicResponse:
        items = self._valid(
            lambda item: self._item_response(item, chapter_id, cards),
            _by_created(topic.get("items", [])),
            "item",
        )
        return TopicResponse.model_validate({**topic, "chapter_id": chapter_id, "items": items})

    def _chapter_response(self, chapter: dict, cards: dict) -> ChapterResponse:
        topics = self._valid(
            lambda topic: self._topic_response(topic, chapter["id"], cards),
            _by_order(chapter.get("topics", [])),
            "topic",
        )
        return ChapterResponse.model_validate({**chapter, "topics": topics})

    # =========================================================================
    # AUTH
    # =========================================================================

    def _users(self) -> list[dict[str, Any]]:
        return _records(self.store.get_list(USERS_KEY), "user")

    def register(self, name: str, email: str, password: str) -> AuthResponse:
        """Create a local account.

        Raises:
            ClientError: Invalid name, email or password
            ConflictError: Email already registered locally
        """
        try:
            request = RegisterRequest(name=name, email=email, password=password)
        except ValidationError as e:
            raise ClientError(e.errors()[0]["msg"]) from e

        users = self._users()
        if any(u.get("email") == request.email for u in users):
            raise ConflictError("User already exists with this email")

        record = {
            "id": _new_id("user"),
            "name": request.name,
            "email": request.email,
            # Cleartext: local demo accounts only
            "password": request.password,
            "created_at": _now(),
        }
        users.append(record)
        self.store.set(USERS_KEY, users)

        logger.info("local.user_registered", user_id=record["id"])
        return AuthResponse(user=_public_user(record), token=f"{LOCAL_TOKEN_PREFIX}{record['id']}")

    def login(self, email: str, password: str) -> AuthResponse:
        email = email.strip().lower()
        for user in self._users():
            if user.get("email") == email and user.get("password") == password:
                logger.info("local.user_logged_in", user_id=user["id"])
                return AuthResponse(
                    user=_public_user(user), token=f"{LOCAL_TOKEN_PREFIX}{user['id']}"
                )
        raise AuthError("Invalid email or password")

    def me(self) -> MeResponse:
        token = self.store.get_token()
        if not token or not token.startswith(LOCAL_TOKEN_PREFIX):
            raise AuthError("Not authenticated")

        user_id = token[len(LOCAL_TOKEN_PREFIX):]
        for user in self._users():
            if user.get("id") == user_id:
                return MeResponse(user=_public_user(user))
        raise AuthError("User not found")

    def list_users(self) -> list[UserResponse]:
        """Local accounts, without their passwords."""
        return self._valid(_public_user, self._users(), "user")

    def delete_user(self, user_id: str) -> MessageResponse:
        """Remove a local account together with its chapters and flashcards.

        Raises:
            NotFoundError: No local account with that id
        """
        users = self._users()
        kept = [u for u in users if u["id"] != user_id]
        if len(kept) == len(users):
            raise NotFoundError("User not found")

        chapters, _ = self._load_tree()
        theirs = [c for c in chapters if c.get("user_id") == user_id]
        item_ids = self._owned_item_ids(theirs)

        self.store.set(USERS_KEY, kept)
        self._save_tree([c for c in chapters if c.get("user_id") != user_id])
        self._prune_flashcards(item_ids)
        if self._current_user_id() == user_id:
            self.store.clear_session()

        logger.info("local.user_deleted", user_id=user_id, chapters=len(theirs))
        return MessageResponse(message="User deleted successfully")

    # =========================================================================
    # CHAPTERS
    # =========================================================================

    def list_chapters(self) -> list[ChapterResponse]:
        _, owned = self._load_tree()
        cards = self._cards_by_item()
        return self._valid(lambda c: self._chapter_response(c, cards), _by_order(owned), "chapter")

    def create_chapter(self, data: ChapterCreate) -> ChapterResponse:
        chapters, owned = self._load_tree()
        now = _now()
        chapter = {
            "id": _new_id("ch"),
            "user_id": self._current_user_id(),
            "name": data.name,
            "description": data.description,
            "color": data.color,
            "order": max((_order_of(c) for c in owned), default=0) + 1,
            "created_at": now,
            "updated_at": now,
            "topics": [],
        }
        chapters.append(chapter)
        self._save_tree(chapters)

        logger.info("local.chapter_created", chapter_id=chapter["id"], order=chapter["order"])
        return self._chapter_response(chapter, {})

    def update_chapter(self, chapter_id: str, data: ChapterUpdate) -> ChapterResponse:
        chapters, owned = self._load_tree()
        chapter = self._find_chapter(owned, chapter_id)
        chapter.update(patch_fields(data))
        chapter["updated_at"] = _now()
        self._save_tree(chapters)
        return self._chapter_response(chapter, self._cards_by_item())

    def delete_chapter(self, chapter_id: str) -> MessageResponse:
        chapters, owned = self._load_tree()
        chapter = self._find_chapter(owned, chapter_id)
        item_ids = self._owned_item_ids([chapter])

        self._save_tree([c for c in chapters if c is not chapter])
        self._prune_flashcards(item_ids)

        logger.info("local.chapter_deleted", chapter_id=chapter_id, items=len(item_ids))
        return MessageResponse(message="Chapter deleted successfully")

    # =========================================================================
    # TOPICS
    # =========================================================================

    def create_topic(self, chapter_id: str, data: TopicCreate) -> TopicResponse:
        chapters, owned = self._load_tree()
        chapter = self._find_chapter(owned, chapter_id)
        topics = chapter.setdefault("topics", [])
        topic = {
            "id": _new_id("tp"),
            "chapter_id": chapter["id"],
            "name": data.name,
            "description": data.description,
            "order": max((_order_of(t) for t in topics), default=0) + 1,
            "created_at": _now(),
            "items": [],
        }
        topics.append(topic)
        self._save_tree(chapters)

        logger.info("local.topic_created", topic_id=topic["id"], order=topic["order"])
        return self._topic_response(topic, chapter["id"], {})

    def update_topic(self, topic_id: str, data: TopicUpdate) -> TopicResponse:
        chapters, owned = self._load_tree()
        chapter, topic = self._find_topic(owned, topic_id)
        topic.update(patch_fields(data))
        self._save_tree(chapters)
        return self._topic_response(topic, chapter["id"], self._cards_by_item())

    def delete_topic(self, topic_id: str) -> MessageResponse:
        chapters, owned = self._load_tree()
        chapter, topic = self._find_topic(owned, topic_id)
        item_ids = {item["id"] for item in topic.get("items", [])}

        chapter["topics"] = [t for t in chapter["topics"] if t is not topic]
        self._save_tree(chapters)
        self._prune_flashcards(item_ids)
        return MessageResponse(message="Topic deleted successfully")

    # =========================================================================
    # ITEMS
    # =========================================================================

    def create_item(self, topic_id: str, data: ItemCreate) -> ItemResponse:
        chapters, owned = self._load_tree()
        chapter, topic = self._find_topic(owned, topic_id)
        now = _now()
        item = {
            "id": _new_id("item"),
            "topic_id": topic["id"],
            "name": data.name,
            "scientific_name": data.scientific_name,
            "type": data.type,
            "description": data.description,
            "image_url": data.image_url,
            "properties": [p.model_dump() for p in data.properties],
            "created_at": now,
            "updated_at": now,
        }
        topic.setdefault("items", []).append(item)
        self._save_tree(chapters)

        if data.has_flashcard:
            cards = self._cards()
            cards.append(self._new_flashcard(item["id"], data.flashcard_front, data.flashcard_back))
            self.store.set(FLASHCARDS_KEY, cards)

        logger.info("local.item_created", item_id=item["id"], has_flashcard=data.has_flashcard)
        return self._item_response(item, chapter["id"], self._cards_by_item())

    def update_item(self, item_id: str, data: ItemUpdate) -> ItemResponse:
        chapters, owned = self._load_tree()
        chapter, _, item = self._find_item(owned, item_id)

        fields = patch_fields(data)
        if "properties" in fields:
            # Whole set replaced
            fields["properties"] = fields["properties"] or []
        item.update(fields)
        item["updated_at"] = _now()
        self._save_tree(chapters)
        return self._item_response(item, chapter["id"], self._cards_by_item())

    def delete_item(self, item_id: str) -> MessageResponse:
        chapters, owned = self._load_tree()
        _, topic, item = self._find_item(owned, item_id)

        topic["items"] = [i for i in topic["items"] if i is not item]
        self._save_tree(chapters)
        self._prune_flashcards({item_id})
        return MessageResponse(message="Item deleted successfully")

    def upload_image(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> UploadResponse:
        """Encode the image inline as a data: URI (nothing leaves the device)."""
        extension = PurePath(filename).suffix.lower().lstrip(".")
        if extension not in ALLOWED_EXTENSIONS:
            raise ClientError("Only image files are allowed")

        mime = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        encoded = base64.b64encode(content).decode("ascii")
        return UploadResponse(image_url=f"data:{mime};base64,{encoded}", public_id=None)

    # =========================================================================
    # FLASHCARDS
    # =========================================================================

    def _new_flashcard(self, item_id: str, front: str, back: str) -> dict[str, Any]:
        return {
            "id": _new_id("fc"),
            "item_id": item_id,
            "front": front,
            "back": back,
            "mastered": False,
            "last_reviewed_at": None,
            "created_at": _now(),
        }

    def _find_flashcard(self, cards: list[dict], flashcard_id: str) -> dict[str, Any]:
        _, owned = self._load_tree()
        owned_items = self._owned_item_ids(owned)
        for card in cards:
            if card.get("id") == flashcard_id and card.get("item_id") in owned_items:
                return card
        raise NotFoundError("Flashcard not found")

    def list_flashcards(self) -> list[FlashcardEntry]:
        _, owned = self._load_tree()
        cards = self._cards_by_item()

        entries = []
        for chapter in _by_order(owned):
            for topic in _by_order(chapter.get("topics", [])):
                for item in _by_created(topic.get("items", [])):
                    card = cards.get(item["id"])
                    if card is None:
                        continue
                    entry = {
                        **card,
                        "item_name": item.get("name"),
                        "topic_id": topic["id"],
                        "chapter_id": chapter["id"],
                    }
                    entries.extend(self._valid(FlashcardEntry.model_validate, [entry], "flashcard"))
        return entries

    def create_flashcard(self, data: FlashcardCreate) -> FlashcardResponse:
        _, owned = self._load_tree()
        self._find_item(owned, data.item_id)

        cards = self._cards()
        if any(c.get("item_id") == data.item_id for c in cards):
            raise ConflictError("Item already has a flashcard")

        card = self._new_flashcard(data.item_id, data.front, data.back)
        cards.append(card)
        self.store.set(FLASHCARDS_KEY, cards)
        return FlashcardResponse.model_validate(card)

    def update_flashcard(self, flashcard_id: str, data: FlashcardUpdate) -> FlashcardResponse:
        cards = self._cards()
        card = self._find_flashcard(cards, flashcard_id)

        fields = patch_fields(data)
        card.update(fields)
        if "mastered" in fields:
            card["last_reviewed_at"] = _now()
        self.store.set(FLASHCARDS_KEY, cards)
        return FlashcardResponse.model_validate(card)

    def delete_flashcard(self, flashcard_id: str) -> MessageResponse:
        cards = self._cards()
        card = self._find_flashcard(cards, flashcard_id)
        self.store.set(FLASHCARDS_KEY, [c for c in cards if c is not card])
        return MessageResponse(message="Flashcard deleted successfully")

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(self, query: str, item_type: str | None = None) -> SearchResponse:
        """Same matching rules and limits as the API search endpoint."""
        q = normalize_query(query)
        if not q:
            return SearchResponse()

        type_filter = item_type.strip().lower() if item_type else None
        _, owned = self._load_tree()
        cards = self._cards_by_item()
        result = SearchResponse()

        for chapter in _by_order(owned):
            if contains(q, chapter.get("name"), chapter.get("description")):
                result.chapters.extend(
                    self._valid(ChapterSummary.model_validate, [chapter], "chapter")
                )

            for topic in _by_order(chapter.get("topics", [])):
                if contains(q, topic.get("name"), topic.get("description")):
                    result.topics.extend(
                        self._valid(
                            lambda t: TopicSummary.model_validate(
                                {**t, "chapter_id": chapter["id"], "chapter_name": chapter.get("name")}
                            ),
                            [topic],
                            "topic",
                        )
                    )

                for item in _by_created(topic.get("items", [])):
                    if type_filter and item.get("type") != type_filter:
                        continue
                    pairs = ((p.get("key"), p.get("value")) for p in item.get("properties", []))
                    if item_matches(
                        q, item.get("name"), item.get("scientific_name"), item.get("description"), pairs
                    ):
                        result.items.extend(
                            self._valid(
                                lambda i: self._item_response(i, chapter["id"], cards), [item], "item"
                            )
                        )

        result.items = result.items[:MAX_ITEM_RESULTS]
        result.chapters = result.chapters[:MAX_CHAPTER_RESULTS]
        result.topics = result.topics[:MAX_TOPIC_RESULTS]
        return result

    # =========================================================================
    # LOCAL-ONLY EXTRAS
    # =========================================================================

    def seed_sample_chapters(self) -> list[ChapterResponse]:
        """Write the introductory chapters when the user has none.

        Returns:
            The chapters created (empty if the user already had chapters)
        """
        chapters, owned = self._load_tree()
        if owned:
            return []

        user_id = self._current_user_id()
        created = []
        for order, sample in enumerate(SAMPLE_CHAPTERS, start=1):
            now = _now()
            chapter_id = _new_id("ch")
            chapter = {
                "id": chapter_id,
                "user_id": user_id,
                "name": sample["name"],
                "description": sample["description"],
                "color": None,
                "order": order,
                "created_at": now,
                "updated_at": now,
                "topics": [
                    {
                        "id": _new_id("tp"),
                        "chapter_id": chapter_id,
                        "name": name,
                        "description": description,
                        "order": topic_order,
                        "created_at": now,
                        "items": [],
                    }
                    for topic_order, (name, description) in enumerate(sample["topics"], start=1)
                ],
            }
            chapters.append(chapter)
            created.append(chapter)
        self._save_tree(chapters)

        logger.info("local.sample_chapters_seeded", chapters=len(created))
        return [self._chapter_response(c, {}) for c in created]

    def record_quiz_result(
        self,
        total: int,
        correct: int,
        chapter_id: str | None = None,
        topic_id: str | None = None,
    ) -> QuizResult:
        result = QuizResult(
            id=_new_id("quiz"),
            chapter_id=chapter_id,
            topic_id=topic_id,
            total=total,
            correct=correct,
            created_at=datetime.now(timezone.utc),
        )
        results = self.store.get_list(QUIZZES_KEY)
        results.append(result.model_dump(mode="json"))
        self.store.set(QUIZZES_KEY, results)
        return result

    def list_quiz_results(self) -> list[QuizResult]:
        results = []
        for record in self.store.get_list(QUIZZES_KEY):
            try:
                results.append(QuizResult.model_validate(record))
            except ValidationError:
                record_id = record.get("id") if isinstance(record, dict) else None
                logger.warning("local.invalid_record", kind="quiz_result", record_id=record_id)
        return results
