"""Repository functions for chapters, topics, items and flashcards.

Every function takes the id of the requesting user and resolves entities
through the ownership chain (item -> topic -> chapter -> user). An entity
outside that chain is reported exactly like a missing one, so callers
cannot tell "not yours" from "does not exist".
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from pharmastudy.db.models import Chapter, Flashcard, Item, Property, Topic
from pharmastudy.web.schemas import (
    ChapterCreate,
    ChapterUpdate,
    FlashcardCreate,
    FlashcardUpdate,
    ItemCreate,
    ItemUpdate,
    PropertyIn,
    TopicCreate,
    TopicUpdate,
    patch_fields,
)

logger = structlog.get_logger(__name__)


class EntityNotFoundError(Exception):
    """Entity missing or not owned by the requesting user."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class FlashcardExistsError(Exception):
    """Raised when an item already has its flashcard."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("Item already has a flashcard")


def _apply_patch(entity, fields: dict) -> list[str]:
    """Copy patch fields onto an entity."""
    changed = []
    for name, value in fields.items():
        setattr(entity, name, value)
        changed.append(name)
    return changed


def _build_properties(properties: list[PropertyIn]) -> list[Property]:
    return [
        Property(key=prop.key, value=prop.value, position=position)
        for position, prop in enumerate(properties)
    ]


# =============================================================================
# CHAPTERS
# =============================================================================


def list_chapters(session: Session, user_id: str) -> list[Chapter]:
    """All chapters of a user with topics, items, properties and flashcards loaded."""
    stmt = (
        select(Chapter)
        .where(Chapter.user_id == user_id)
        .options(
            selectinload(Chapter.topics)
            .selectinload(Topic.items)
            .selectinload(Item.properties),
            selectinload(Chapter.topics)
            .selectinload(Topic.items)
            .selectinload(Item.flashcard),
        )
        .order_by(Chapter.order, Chapter.created_at)
        .execution_options(populate_existing=True)
    )
    return list(session.scalars(stmt).all())


def get_chapter(session: Session, user_id: str, chapter_id: str) -> Chapter:
    """Get a chapter owned by the user.

    Raises:
        EntityNotFoundError: If missing or owned by someone else
    """
    chapter = session.scalar(
        select(Chapter).where(Chapter.id == chapter_id, Chapter.user_id == user_id)
    )
    if chapter is None:
        raise EntityNotFoundError("Chapter", chapter_id)
    return chapter


def create_chapter(session: Session, user_id: str, data: ChapterCreate) -> Chapter:
    """Create a chapter at the end of the user's chapter list."""
    max_order = session.scalar(
        select(func.max(Chapter.order)).where(Chapter.user_id == user_id)
    )
    chapter = Chapter(
        user_id=user_id,
        name=data.name,
        description=data.description,
        color=data.color,
        order=(max_order or 0) + 1,
    )
    session.add(chapter)
    session.flush()

    logger.info("chapters.created", chapter_id=chapter.id, order=chapter.order)
    return chapter


def update_chapter(
    session: Session, user_id: str, chapter_id: str, data: ChapterUpdate
) -> Chapter:
    chapter = get_chapter(session, user_id, chapter_id)
    changed = _apply_patch(chapter, patch_fields(data))
    session.flush()

    logger.info("chapters.updated", chapter_id=chapter_id, fields=changed)
    return chapter


def delete_chapter(session: Session, user_id: str, chapter_id: str) -> None:
    """Delete a chapter and, by cascade, its topics and their items."""
    chapter = get_chapter(session, user_id, chapter_id)
    session.delete(chapter)
    session.flush()

    logger.info("chapters.deleted", chapter_id=chapter_id)


# =============================================================================
# TOPICS
# =============================================================================


def get_topic(session: Session, user_id: str, topic_id: str) -> Topic:
    topic = session.scalar(
        select(Topic)
        .join(Chapter, Topic.chapter_id == Chapter.id)
        .where(Topic.id == topic_id, Chapter.user_id == user_id)
    )
    if topic is None:
        raise EntityNotFoundError("Topic", topic_id)
    return topic


def create_topic(
    session: Session, user_id: str, chapter_id: str, data: TopicCreate
) -> Topic:
    """Create a topic at the end of a chapter.

    Raises:
        EntityNotFoundError: If the chapter does not belong to the user
    """
    chapter = get_chapter(session, user_id, chapter_id)

    max_order = session.scalar(
        select(func.max(Topic.order)).where(Topic.chapter_id == chapter.id)
    )
    topic = Topic(
        chapter_id=chapter.id,
        name=data.name,
        description=data.description,
        order=(max_order or 0) + 1,
    )
    session.add(topic)
    session.flush()

    logger.info("topics.created", topic_id=topic.id, chapter_id=chapter.id, order=topic.order)
    return topic


def update_topic(session: Session, user_id: str, topic_id: str, data: TopicUpdate) -> Topic:
    topic = get_topic(session, user_id, topic_id)
    changed = _apply_patch(topic, patch_fields(data))
    session.flush()

    logger.info("topics.updated", topic_id=topic_id, fields=changed)
    return topic


def delete_topic(session: Session, user_id: str, topic_id: str) -> None:
    topic = get_topic(session, user_id, topic_id)
    session.delete(topic)
    session.flush()

    logger.info("topics.deleted", topic_id=topic_id)


# =============================================================================
# ITEMS
# =============================================================================


def get_item(session: Session, user_id: str, item_id: str) -> Item:
    item = session.scalar(
        select(Item)
        .join(Topic, Item.topic_id == Topic.id)
        .join(Chapter, Topic.chapter_id == Chapter.id)
        .where(Item.id == item_id, Chapter.user_id == user_id)
    )
    if item is None:
        raise EntityNotFoundError("Item", item_id)
    return item


def create_item(session: Session, user_id: str, topic_id: str, data: ItemCreate) -> Item:
    """Create an item with its properties and, if front and back are given, a flashcard.

    Raises:
        EntityNotFoundError: If the topic does not belong to the user
    """
    topic = get_topic(session, user_id, topic_id)

    item = Item(
        topic_id=topic.id,
        name=data.name,
        scientific_name=data.scientific_name,
        type=data.type,
        description=data.description,
        image_url=data.image_url,
        properties=_build_properties(data.properties),
    )
    if data.has_flashcard:
        item.flashcard = Flashcard(front=data.flashcard_front, back=data.flashcard_back)

    session.add(item)
    session.flush()

    logger.info(
        "items.created",
        item_id=item.id,
        topic_id=topic.id,
        properties=len(data.properties),
        has_flashcard=data.has_flashcard,
    )
    return item


def update_item(session: Session, user_id: str, item_id: str, data: ItemUpdate) -> Item:
    """Patch an item. A ``properties`` list replaces the whole set.

    Ownership is checked before anything is modified.
    """
    item = get_item(session, user_id, item_id)

    fields = patch_fields(data)
    properties = fields.pop("properties", None)
    changed = _apply_patch(item, fields)

    if "properties" in data.model_fields_set:
        # Delete-all-then-recreate; delete-orphan removes the old rows
        item.properties = []
        session.flush()
        item.properties = _build_properties(data.properties or [])
        changed.append("properties")

    session.flush()

    logger.info(
        "items.updated",
        item_id=item_id,
        fields=changed,
        properties=None if properties is None else len(properties),
    )
    return item


def delete_item(session: Session, user_id: str, item_id: str) -> str | None:
    """Delete an item.

    Returns:
        The item's image_url, so the caller can release the hosted image
    """
    item = get_item(session, user_id, item_id)
    image_url = item.image_url
    session.delete(item)
    session.flush()

    logger.info("items.deleted", item_id=item_id)
    return image_url


# =============================================================================
# FLASHCARDS
# =============================================================================


def _owned_flashcards():
    return (
        select(Flashcard)
        .join(Item, Flashcard.item_id == Item.id)
        .join(Topic, Item.topic_id == Topic.id)
        .join(Chapter, Topic.chapter_id == Chapter.id)
    )


def list_flashcards(session: Session, user_id: str) -> list[Flashcard]:
    stmt = (
        _owned_flashcards()
        .where(Chapter.user_id == user_id)
        .options(selectinload(Flashcard.item).selectinload(Item.topic))
        .order_by(Chapter.order, Topic.order, Item.created_at)
    )
    return list(session.scalars(stmt).all())


def get_flashcard(session: Session, user_id: str, flashcard_id: str) -> Flashcard:
    flashcard = session.scalar(
        _owned_flashcards().where(Flashcard.id == flashcard_id, Chapter.user_id == user_id)
    )
    if flashcard is None:
        raise EntityNotFoundError("Flashcard", flashcard_id)
    return flashcard


def create_flashcard(session: Session, user_id: str, data: FlashcardCreate) -> Flashcard:
    """Attach a flashcard to an item.

    Raises:
        EntityNotFoundError: If the item does not belong to the user
        FlashcardExistsError: If the item already has one
    """
    item = get_item(session, user_id, data.item_id)
    existing = session.scalar(select(Flashcard.id).where(Flashcard.item_id == item.id))
    if existing is not None:
        raise FlashcardExistsError(item.id)

    flashcard = Flashcard(item_id=item.id, front=data.front, back=data.back)
    session.add(flashcard)
    session.flush()

    logger.info("flashcards.created", flashcard_id=flashcard.id, item_id=item.id)
    return flashcard


def update_flashcard(
    session: Session, user_id: str, flashcard_id: str, data: FlashcardUpdate
) -> Flashcard:
    """Patch a flashcard; changing ``mastered`` stamps last_reviewed_at."""
    flashcard = get_flashcard(session, user_id, flashcard_id)
    changed = _apply_patch(flashcard, patch_fields(data))
    if "mastered" in changed:
        flashcard.last_reviewed_at = datetime.now(timezone.utc)
    session.flush()

    logger.info("flashcards.updated", flashcard_id=flashcard_id, fields=changed)
    return flashcard


def delete_flashcard(session: Session, user_id: str, flashcard_id: str) -> None:
    flashcard = get_flashcard(session, user_id, flashcard_id)
    session.delete(flashcard)
    session.flush()

    logger.info("flashcards.deleted", flashcard_id=flashcard_id)
