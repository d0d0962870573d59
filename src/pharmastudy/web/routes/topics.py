"""Topic endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pharmastudy.db import content_repository as repo
from pharmastudy.db.database import get_session
from pharmastudy.db.models import User
from pharmastudy.web.dependencies import get_current_user
from pharmastudy.web.schemas import (
    MessageResponse,
    TopicCreate,
    TopicResponse,
    TopicUpdate,
)

router = APIRouter(prefix="/topics", tags=["topics"])


@router.post("/{chapter_id}", response_model=TopicResponse, status_code=status.HTTP_201_CREATED)
async def create_topic(
    chapter_id: str,
    body: TopicCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TopicResponse:
    """Create a topic at the end of a chapter."""
    topic = repo.create_topic(session, user.id, chapter_id, body)
    return TopicResponse.model_validate(topic)


@router.put("/{topic_id}", response_model=TopicResponse)
async def update_topic(
    topic_id: str,
    body: TopicUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TopicResponse:
    topic = repo.update_topic(session, user.id, topic_id, body)
    return TopicResponse.model_validate(topic)


@router.delete("/{topic_id}", response_model=MessageResponse)
async def delete_topic(
    topic_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MessageResponse:
    repo.delete_topic(session, user.id, topic_id)
    return MessageResponse(message="Topic deleted successfully")
