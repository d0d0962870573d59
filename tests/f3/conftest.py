"""Fixtures for F3 tests - REST API through TestClient."""

import pytest
from fastapi.testclient import TestClient

from pharmastudy.db.database import init_db
from pharmastudy.web.api import create_app


@pytest.fixture
def app():
    """App bound to a fresh in-memory database."""
    init_db("sqlite://")
    return create_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register_user(client):
    """Register an account and return its Authorization header."""

    def _register(name="Alice", email="alice@example.com", password="password-alice"):
        response = client.post(
            "/auth/register", json={"name": name, "email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _register


@pytest.fixture
def alice_headers(register_user):
    return register_user()


@pytest.fixture
def bob_headers(register_user):
    return register_user(name="Bob", email="bob@example.com", password="password-bob")


@pytest.fixture
def topic_id(client, alice_headers):
    """A topic inside a fresh chapter owned by Alice."""
    chapter = client.post(
        "/chapters", json={"name": "Pharmacokinetics", "description": "ADME"}, headers=alice_headers
    ).json()
    topic = client.post(
        f"/topics/{chapter['id']}", json={"name": "Absorption"}, headers=alice_headers
    ).json()
    return topic["id"]
