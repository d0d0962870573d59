"""Password hashing and access tokens.

Passwords are hashed with passlib; tokens are HS256 JWTs carrying the
user id in ``sub``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import structlog
from passlib.context import CryptContext

from pharmastudy.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenError(Exception):
    """Token missing, malformed, expired or signed with another key."""

    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: str,
    expires_delta: timedelta | None = None,
    secret_key: str | None = None,
) -> str:
    """Create a signed access token for a user.

    Args:
        user_id: Subject of the token
        expires_delta: Lifetime (defaults to server.token_expire_minutes)
        secret_key: Signing key (defaults to server.secret_key)

    Returns:
        Encoded JWT
    """
    server = load_app_config().server
    if expires_delta is None:
        expires_delta = timedelta(minutes=server.token_expire_minutes)

    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "iat": now, "exp": now + expires_delta}
    return jwt.encode(payload, secret_key or server.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, secret_key: str | None = None) -> str:
    """Decode a token and return its user id.

    Raises:
        TokenError: If the token cannot be trusted
    """
    key = secret_key or load_app_config().server.secret_key
    try:
        payload = jwt.decode(token, key, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug("auth.token_rejected", error=str(e))
        raise TokenError("Invalid or expired token") from e

    user_id = payload.get("sub")
    if not user_id:
        raise TokenError("Token has no subject")
    return user_id
