"""Fixtures for F2 tests - repositories on an in-memory database."""

import pytest

from pharmastudy.db.database import get_db, init_db
from pharmastudy.db.users_repository import create_user


@pytest.fixture
def session():
    """Fresh in-memory database and an open session."""
    init_db("sqlite://")
    with get_db() as db:
        yield db


@pytest.fixture
def alice(session):
    return create_user(session, "Alice", "alice@example.com", "password-alice")


@pytest.fixture
def bob(session):
    return create_user(session, "Bob", "bob@example.com", "password-bob")
