"""Full-text-ish search over a user's chapters, topics and items.

Case-insensitive substring matching; each result list is capped so a broad
query cannot produce an unbounded response.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from pharmastudy.core.search import (
    MAX_CHAPTER_RESULTS,
    MAX_ITEM_RESULTS,
    MAX_TOPIC_RESULTS,
    normalize_query,
)
from pharmastudy.db.models import Chapter, Item, Property, Topic

logger = structlog.get_logger(__name__)


@dataclass
class SearchResult:
    """Matches grouped by entity type."""

    items: list[Item] = field(default_factory=list)
    chapters: list[Chapter] = field(default_factory=list)
    topics: list[Topic] = field(default_factory=list)


def _ilike(column, query: str):
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def search(session: Session, user_id: str, query: str | None, item_type: str | None = None) -> SearchResult:
    """Search the user's content.

    Args:
        session: ORM session
        user_id: Requesting user
        query: Free text; empty returns empty lists
        item_type: Optional filter on Item.type

    Returns:
        SearchResult with up to 50 items, 10 chapters and 10 topics
    """
    q = normalize_query(query)
    if not q:
        return SearchResult()

    property_match = (
        select(Property.id)
        .where(
            Property.item_id == Item.id,
            or_(_ilike(Property.key, q), _ilike(Property.value, q)),
        )
        .exists()
    )

    item_stmt = (
        select(Item)
        .join(Topic, Item.topic_id == Topic.id)
        .join(Chapter, Topic.chapter_id == Chapter.id)
        .where(
            Chapter.user_id == user_id,
            or_(
                _ilike(Item.name, q),
                _ilike(Item.scientific_name, q),
                _ilike(Item.description, q),
                property_match,
            ),
        )
        .options(selectinload(Item.properties), selectinload(Item.flashcard))
        .order_by(Chapter.order, Topic.order, Item.created_at)
        .limit(MAX_ITEM_RESULTS)
    )
    if item_type:
        item_stmt = item_stmt.where(Item.type == item_type.strip().lower())

    chapter_stmt = (
        select(Chapter)
        .where(
            Chapter.user_id == user_id,
            or_(_ilike(Chapter.name, q), _ilike(Chapter.description, q)),
        )
        .order_by(Chapter.order)
        .limit(MAX_CHAPTER_RESULTS)
    )

    topic_stmt = (
        select(Topic)
        .join(Chapter, Topic.chapter_id == Chapter.id)
        .where(
            Chapter.user_id == user_id,
            or_(_ilike(Topic.name, q), _ilike(Topic.description, q)),
        )
        .options(selectinload(Topic.chapter))
        .order_by(Chapter.order, Topic.order)
        .limit(MAX_TOPIC_RESULTS)
    )

    result = SearchResult(
        items=list(session.scalars(item_stmt).all()),
        chapters=list(session.scalars(chapter_stmt).all()),
        topics=list(session.scalars(topic_stmt).all()),
    )

    logger.debug(
        "search.completed",
        items=len(result.items),
        chapters=len(result.chapters),
        topics=len(result.topics),
    )
    return result
