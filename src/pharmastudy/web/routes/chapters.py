"""Chapter endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pharmastudy.db import content_repository as repo
from pharmastudy.db.database import get_session
from pharmastudy.db.models import User
from pharmastudy.web.dependencies import get_current_user
from pharmastudy.web.schemas import (
    ChapterCreate,
    ChapterResponse,
    ChapterUpdate,
    MessageResponse,
)

router = APIRouter(prefix="/chapters", tags=["chapters"])


@router.get("", response_model=list[ChapterResponse])
async def list_chapters(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[ChapterResponse]:
    """List the caller's chapters with their full topic/item tree."""
    chapters = repo.list_chapters(session, user.id)
    return [ChapterResponse.model_validate(c) for c in chapters]


@router.post("", response_model=ChapterResponse, status_code=status.HTTP_201_CREATED)
async def create_chapter(
    body: ChapterCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ChapterResponse:
    """Create a chapter at the end of the caller's list."""
    chapter = repo.create_chapter(session, user.id, body)
    return ChapterResponse.model_validate(chapter)


@router.put("/{chapter_id}", response_model=ChapterResponse)
async def update_chapter(
    chapter_id: str,
    body: ChapterUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ChapterResponse:
    """Patch name, description, color or order."""
    chapter = repo.update_chapter(session, user.id, chapter_id, body)
    return ChapterResponse.model_validate(chapter)


@router.delete("/{chapter_id}", response_model=MessageResponse)
async def delete_chapter(
    chapter_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MessageResponse:
    """Delete a chapter with all of its topics and items."""
    repo.delete_chapter(session, user.id, chapter_id)
    return MessageResponse(message="Chapter deleted successfully")
