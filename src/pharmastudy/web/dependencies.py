"""Request dependencies: database session, current user, media store."""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pharmastudy.core.auth import TokenError, decode_access_token
from pharmastudy.core.media import MediaStore
from pharmastudy.db.database import get_session
from pharmastudy.db.models import User
from pharmastudy.db.users_repository import get_user_by_id

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the bearer token to a user, or fail with 401."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        user_id = decode_access_token(credentials.credentials)
    except TokenError:
        raise _unauthorized("Invalid or expired token")

    user = get_user_by_id(session, user_id)
    if user is None:
        logger.info("auth.unknown_user", user_id=user_id)
        raise _unauthorized("User not found")
    return user


def get_media_store() -> MediaStore:
    return MediaStore.from_config()
