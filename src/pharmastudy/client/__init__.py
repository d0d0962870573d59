"""Client data-access layer.

StudyClient tries the remote API per call and falls back to the on-device
store when the API is unreachable or answers with an error.
"""

from pharmastudy.client.errors import (
    AuthError,
    ClientError,
    ConflictError,
    NotFoundError,
    RemoteError,
)
from pharmastudy.client.local_backend import LocalBackend
from pharmastudy.client.local_store import LocalStore
from pharmastudy.client.remote_backend import RemoteBackend
from pharmastudy.client.service import ClientStatus, StudyClient

__all__ = [
    "AuthError",
    "ClientError",
    "ClientStatus",
    "ConflictError",
    "LocalBackend",
    "LocalStore",
    "NotFoundError",
    "RemoteBackend",
    "RemoteError",
    "StudyClient",
]
