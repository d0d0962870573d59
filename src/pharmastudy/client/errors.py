"""Client-side errors.

``RemoteError`` only ever triggers the local fallback. The other errors
come from the local backend and carry short messages meant for the user.
"""

from __future__ import annotations


class ClientError(Exception):
    """Error raised by the client data-access layer."""

    pass


class NotFoundError(ClientError):
    """Entity missing or not owned by the current local user."""

    pass


class AuthError(ClientError):
    """Not authenticated, or bad credentials."""

    pass


class ConflictError(ClientError):
    """Entity already exists (duplicate email, second flashcard)."""

    pass


class RemoteError(ClientError):
    """Remote API unreachable, unconfigured, or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
