"""Pydantic schemas for the Web API.

The same models are returned by the client data-access layer whether a
call was served remotely or from the local store, so callers never branch
on which path answered.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator

ItemType = Literal["molecule", "enzyme", "medication"]

# Email validation pattern
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")

MIN_PASSWORD_LENGTH = 8


def validate_email(email: str) -> bool:
    """Validate email format."""
    return bool(EMAIL_PATTERN.match(email))


# =============================================================================
# AUTH SCHEMAS
# =============================================================================


class RegisterRequest(BaseModel):
    """Request body for creating an account."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not validate_email(value):
            raise ValueError("Invalid email format")
        return value


class LoginRequest(BaseModel):
    """Request body for logging in."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserResponse(BaseModel):
    """Public view of a user (never includes the password)."""

    id: str
    name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Response for register/login."""

    user: UserResponse
    token: str


class MeResponse(BaseModel):
    """Response for GET /auth/me."""

    user: UserResponse


# =============================================================================
# CONTENT SCHEMAS
# =============================================================================


class PropertyIn(BaseModel):
    """A key/value pair attached to an item."""

    key: str = Field(..., min_length=1, max_length=200)
    value: str = ""


class PropertyResponse(BaseModel):
    key: str
    value: str

    model_config = {"from_attributes": True}


class FlashcardResponse(BaseModel):
    """A flashcard as stored."""

    id: str
    item_id: str
    front: str
    back: str
    mastered: bool = False
    last_reviewed_at: datetime | None = None

    model_config = {"from_attributes": True}


class FlashcardEntry(FlashcardResponse):
    """A flashcard listed with the context of the item it belongs to."""

    item_name: str
    topic_id: str
    chapter_id: str


class ItemResponse(BaseModel):
    """A study item with its properties and optional flashcard."""

    id: str
    topic_id: str
    chapter_id: str
    name: str
    scientific_name: str | None = None
    type: ItemType
    description: str = ""
    image_url: str | None = None
    properties: list[PropertyResponse] = Field(default_factory=list)
    flashcard: FlashcardResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TopicResponse(BaseModel):
    id: str
    chapter_id: str
    name: str
    description: str = ""
    order: int
    items: list[ItemResponse] = Field(default_factory=list)
    created_at: datetime

    model_config = {"from_attributes": True}


class ChapterResponse(BaseModel):
    id: str
    name: str
    description: str = ""
    order: int
    color: str | None = None
    topics: list[TopicResponse] = Field(default_factory=list)
    created_at: datetime

    model_config = {"from_attributes": True}


class ChapterSummary(BaseModel):
    """Chapter without its nested topics (search results)."""

    id: str
    name: str
    description: str = ""
    order: int
    color: str | None = None

    model_config = {"from_attributes": True}


class TopicSummary(BaseModel):
    """Topic without its items, with the name of its chapter (search results)."""

    id: str
    chapter_id: str
    chapter_name: str
    name: str
    description: str = ""
    order: int


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# CREATE / UPDATE PAYLOADS
# =============================================================================
# Update payloads are explicit optional-field models: only fields the caller
# actually set (model_fields_set) are patched.


class ChapterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    color: str | None = Field(default=None, max_length=32)


class ChapterUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    color: str | None = Field(default=None, max_length=32)
    order: int | None = Field(default=None, ge=1)


class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""


class TopicUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    order: int | None = Field(default=None, ge=1)


class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    scientific_name: str | None = None
    type: ItemType
    description: str = ""
    image_url: str | None = None
    properties: list[PropertyIn] = Field(default_factory=list)
    flashcard_front: str | None = None
    flashcard_back: str | None = None

    @property
    def has_flashcard(self) -> bool:
        return bool(self.flashcard_front and self.flashcard_back)


class ItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    scientific_name: str | None = None
    type: ItemType | None = None
    description: str | None = None
    image_url: str | None = None
    properties: list[PropertyIn] | None = None


class FlashcardCreate(BaseModel):
    item_id: str
    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)


class FlashcardUpdate(BaseModel):
    front: str | None = Field(default=None, min_length=1)
    back: str | None = Field(default=None, min_length=1)
    mastered: bool | None = None


# Fields that may not be cleared by sending an explicit null
NON_NULLABLE_FIELDS = frozenset(
    {"name", "description", "order", "type", "front", "back", "mastered"}
)


def patch_fields(update: BaseModel) -> dict:
    """Fields the caller explicitly set on an update payload, minus ignored nulls."""
    return {
        name: value
        for name, value in update.model_dump(include=update.model_fields_set).items()
        if value is not None or name not in NON_NULLABLE_FIELDS
    }


# =============================================================================
# SEARCH / UPLOAD SCHEMAS
# =============================================================================


class SearchResponse(BaseModel):
    items: list[ItemResponse] = Field(default_factory=list)
    chapters: list[ChapterSummary] = Field(default_factory=list)
    topics: list[TopicSummary] = Field(default_factory=list)


class UploadResponse(BaseModel):
    image_url: str
    public_id: str | None = None


# =============================================================================
# QUIZ SCHEMAS
# =============================================================================


class QuizResult(BaseModel):
    """A finished quiz session, kept in the local history."""

    id: str
    chapter_id: str | None = None
    topic_id: str | None = None
    total: int = Field(..., ge=0)
    correct: int = Field(..., ge=0)
    created_at: datetime

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.correct * 100 / self.total)


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
