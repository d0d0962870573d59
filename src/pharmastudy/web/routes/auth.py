"""Authentication endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from pharmastudy.core.auth import create_access_token
from pharmastudy.db.database import get_session
from pharmastudy.db.models import User
from pharmastudy.db.users_repository import (
    DuplicateEmailError,
    InvalidCredentialsError,
    authenticate_user,
    create_user,
)
from pharmastudy.web.dependencies import get_current_user
from pharmastudy.web.schemas import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    UserResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest, session: Session = Depends(get_session)
) -> AuthResponse:
    """Create an account and return a session token."""
    try:
        user = create_user(session, body.name, body.email, body.password)
    except DuplicateEmailError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, session: Session = Depends(get_session)) -> AuthResponse:
    """Exchange credentials for a session token."""
    try:
        user = authenticate_user(session, body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("auth.login", user_id=user.id)
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    """Return the authenticated user."""
    return MeResponse(user=UserResponse.model_validate(user))
