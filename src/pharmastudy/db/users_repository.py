"""Repository functions for the users table."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmastudy.core.auth import hash_password, verify_password
from pharmastudy.db.models import User

logger = structlog.get_logger(__name__)


class DuplicateEmailError(Exception):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("User already exists with this email")


class InvalidCredentialsError(Exception):
    """Raised when email/password do not match an account."""

    def __init__(self):
        super().__init__("Invalid email or password")


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.scalar(select(User).where(User.email == email.lower()))


def get_user_by_id(session: Session, user_id: str) -> User | None:
    return session.get(User, user_id)


def create_user(session: Session, name: str, email: str, password: str) -> User:
    """Create a user with a hashed password.

    Raises:
        DuplicateEmailError: If the email is taken
    """
    email = email.lower()
    if get_user_by_email(session, email) is not None:
        raise DuplicateEmailError(email)

    user = User(name=name, email=email, password_hash=hash_password(password))
    session.add(user)
    session.flush()

    logger.info("users.created", user_id=user.id)
    return user


def authenticate_user(session: Session, email: str, password: str) -> User:
    """Return the user for valid credentials.

    Raises:
        InvalidCredentialsError: If email is unknown or password is wrong
    """
    user = get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("users.login_failed")
        raise InvalidCredentialsError()
    return user
