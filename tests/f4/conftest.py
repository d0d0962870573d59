"""Fixtures for F4 tests - client data-access layer, quiz, lookup and CLI."""

import httpx
import pytest
from fastapi.testclient import TestClient

from pharmastudy.client.local_backend import LocalBackend
from pharmastudy.client.local_store import LocalStore
from pharmastudy.client.remote_backend import RemoteBackend
from pharmastudy.config.app_config import load_app_config
from pharmastudy.db.database import init_db
from pharmastudy.web.api import create_app


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "state" / "store.json")


@pytest.fixture
def local(store):
    return LocalBackend(store)


@pytest.fixture
def local_user(local, store):
    """A registered local account with its session stored."""
    auth = local.register("Alice", "alice@example.com", "password-alice")
    store.set_session(auth.token, auth.user.model_dump(mode="json"))
    return auth.user


@pytest.fixture
def config():
    return load_app_config()


@pytest.fixture
def unreachable_remote(store):
    """Remote backend whose every request fails to connect."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return RemoteBackend(
        "http://api.invalid",
        token_provider=store.get_token,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def live_remote(store):
    """Remote backend served by the real API on an in-memory database."""
    init_db("sqlite://")
    return RemoteBackend(
        "http://testserver",
        token_provider=store.get_token,
        client=TestClient(create_app()),
    )
