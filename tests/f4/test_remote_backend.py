"""Tests for the HTTP backend (F4)."""

import json

import httpx
import pytest

from pharmastudy.client.errors import RemoteError
from pharmastudy.client.remote_backend import RemoteBackend
from pharmastudy.web.schemas import ChapterCreate, ChapterUpdate


def _backend(handler, token="jwt-token"):
    return RemoteBackend(
        "http://api.test/",
        token_provider=lambda: token,
        transport=httpx.MockTransport(handler),
    )


CHAPTER = {
    "id": "c1",
    "name": "Pharmacokinetics",
    "description": "ADME",
    "color": None,
    "order": 1,
    "created_at": "2024-01-01T00:00:00",
    "topics": [],
}


class TestRemoteBackend:
    def test_sends_bearer_token_and_parses(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json=[CHAPTER])

        chapters = _backend(handler).list_chapters()

        assert seen == {"auth": "Bearer jwt-token", "path": "/chapters"}
        assert chapters[0].name == "Pharmacokinetics"

    def test_anonymous_request_has_no_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(401, json={"detail": "Not authenticated"})

        with pytest.raises(RemoteError):
            _backend(handler, token=None).me()
        assert seen["auth"] is None

    def test_error_detail_becomes_message(self):
        def handler(request):
            return httpx.Response(404, json={"detail": "Chapter not found"})

        with pytest.raises(RemoteError, match="Chapter not found") as exc_info:
            _backend(handler).delete_chapter("missing")
        assert exc_info.value.status_code == 404

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(RemoteError) as exc_info:
            _backend(handler).list_chapters()
        assert exc_info.value.status_code is None

    def test_unexpected_shape(self):
        def handler(request):
            return httpx.Response(200, json={"not": "a list"})

        with pytest.raises(RemoteError):
            _backend(handler).list_chapters()

    def test_update_sends_only_set_fields(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=CHAPTER)

        _backend(handler).update_chapter("c1", ChapterUpdate(name="PK"))

        assert seen == {"method": "PUT", "body": {"name": "PK"}}

    def test_create_posts_body(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=CHAPTER)

        created = _backend(handler).create_chapter(ChapterCreate(name="Pharmacokinetics"))

        assert seen["body"]["name"] == "Pharmacokinetics"
        assert created.id == "c1"

    def test_search_params(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"items": [], "chapters": [], "topics": []})

        _backend(handler).search("aspirin", "medication")

        assert seen["params"] == {"q": "aspirin", "type": "medication"}
