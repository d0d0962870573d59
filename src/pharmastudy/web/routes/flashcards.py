"""Flashcard endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from pharmastudy.db import content_repository as repo
from pharmastudy.db.database import get_session
from pharmastudy.db.models import Flashcard, User
from pharmastudy.web.dependencies import get_current_user
from pharmastudy.web.schemas import (
    FlashcardCreate,
    FlashcardEntry,
    FlashcardResponse,
    FlashcardUpdate,
    MessageResponse,
)

router = APIRouter(prefix="/flashcards", tags=["flashcards"])


def _to_entry(flashcard: Flashcard) -> FlashcardEntry:
    item = flashcard.item
    return FlashcardEntry(
        id=flashcard.id,
        item_id=flashcard.item_id,
        front=flashcard.front,
        back=flashcard.back,
        mastered=flashcard.mastered,
        last_reviewed_at=flashcard.last_reviewed_at,
        item_name=item.name,
        topic_id=item.topic_id,
        chapter_id=item.topic.chapter_id,
    )


@router.get("", response_model=list[FlashcardEntry])
async def list_flashcards(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[FlashcardEntry]:
    """List the caller's flashcards with their item context."""
    return [_to_entry(f) for f in repo.list_flashcards(session, user.id)]


@router.post("", response_model=FlashcardResponse, status_code=status.HTTP_201_CREATED)
async def create_flashcard(
    body: FlashcardCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> FlashcardResponse:
    try:
        flashcard = repo.create_flashcard(session, user.id, body)
    except repo.FlashcardExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return FlashcardResponse.model_validate(flashcard)


@router.put("/{flashcard_id}", response_model=FlashcardResponse)
async def update_flashcard(
    flashcard_id: str,
    body: FlashcardUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> FlashcardResponse:
    flashcard = repo.update_flashcard(session, user.id, flashcard_id, body)
    return FlashcardResponse.model_validate(flashcard)


@router.delete("/{flashcard_id}", response_model=MessageResponse)
async def delete_flashcard(
    flashcard_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MessageResponse:
    repo.delete_flashcard(session, user.id, flashcard_id)
    return MessageResponse(message="Flashcard deleted successfully")
