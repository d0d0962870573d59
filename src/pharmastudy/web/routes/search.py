"""Search endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pharmastudy.db import search_repository
from pharmastudy.db.database import get_session
from pharmastudy.db.models import User
from pharmastudy.web.dependencies import get_current_user
from pharmastudy.web.schemas import (
    ChapterSummary,
    ItemResponse,
    SearchResponse,
    TopicSummary,
)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search(
    q: str = "",
    type: str | None = None,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> SearchResponse:
    """Search items, chapters and topics. An empty query returns empty lists."""
    result = search_repository.search(session, user.id, q, type)

    return SearchResponse(
        items=[ItemResponse.model_validate(i) for i in result.items],
        chapters=[ChapterSummary.model_validate(c) for c in result.chapters],
        topics=[
            TopicSummary(
                id=t.id,
                chapter_id=t.chapter_id,
                chapter_name=t.chapter.name,
                name=t.name,
                description=t.description,
                order=t.order,
            )
            for t in result.topics
        ],
    )
