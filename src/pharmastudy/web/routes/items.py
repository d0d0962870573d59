"""Study item endpoints, including image upload."""

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from pharmastudy.core.media import (
    MediaError,
    MediaStore,
    MediaTooLargeError,
    UnsupportedMediaError,
)
from pharmastudy.db import content_repository as repo
from pharmastudy.db.database import get_session
from pharmastudy.db.models import User
from pharmastudy.web.dependencies import get_current_user, get_media_store
from pharmastudy.web.schemas import (
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    MessageResponse,
    UploadResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/items", tags=["items"])


# Declared before POST /{topic_id} so "upload" is not taken for a topic id
@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    image: UploadFile | None = File(default=None),
    user: User = Depends(get_current_user),
    media: MediaStore = Depends(get_media_store),
) -> UploadResponse:
    """Store an item image and return its URL."""
    if image is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image uploaded")

    content = await image.read()
    try:
        url, public_id = media.save(image.filename or "", content)
    except UnsupportedMediaError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MediaTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))

    logger.info("items.image_uploaded", user_id=user.id, public_id=public_id)
    return UploadResponse(image_url=url, public_id=public_id)


@router.post("/{topic_id}", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    topic_id: str,
    body: ItemCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ItemResponse:
    """Create an item with properties and an optional flashcard."""
    item = repo.create_item(session, user.id, topic_id, body)
    return ItemResponse.model_validate(item)


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: str,
    body: ItemUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ItemResponse:
    """Patch an item; a properties list replaces the existing set."""
    item = repo.update_item(session, user.id, item_id, body)
    return ItemResponse.model_validate(item)


@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_item(
    item_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    media: MediaStore = Depends(get_media_store),
) -> MessageResponse:
    """Delete an item and release its hosted image.

    Image removal never fails the delete.
    """
    image_url = repo.delete_item(session, user.id, item_id)
    # The row must be gone before its file is
    session.commit()

    if image_url:
        try:
            media.delete_for_url(image_url)
        except MediaError as e:
            logger.error("items.image_delete_failed", item_id=item_id, error=str(e))

    return MessageResponse(message="Item deleted successfully")
