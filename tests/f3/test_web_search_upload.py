"""Tests for search and image upload endpoints (F3)."""

import pytest
from sqlalchemy import event
from sqlalchemy.orm import Session

from pharmastudy.core.media import MediaError, MediaStore
from pharmastudy.web.dependencies import get_media_store


class TestSearch:
    def test_search_is_case_insensitive(self, client, alice_headers, topic_id):
        client.post(
            f"/items/{topic_id}",
            json={"name": "Aspirin", "type": "medication"},
            headers=alice_headers,
        )

        data = client.get("/search", params={"q": "ASPIRIN"}, headers=alice_headers).json()
        assert [i["name"] for i in data["items"]] == ["Aspirin"]

    def test_empty_query(self, client, alice_headers, topic_id):
        data = client.get("/search", params={"q": ""}, headers=alice_headers).json()
        assert data == {"items": [], "chapters": [], "topics": []}

    def test_topics_carry_chapter_name(self, client, alice_headers, topic_id):
        data = client.get("/search", params={"q": "absorption"}, headers=alice_headers).json()
        assert data["topics"][0]["chapter_name"] == "Pharmacokinetics"

    def test_type_filter(self, client, alice_headers, topic_id):
        for name, item_type in [("CYP3A4", "enzyme"), ("CYP inhibitor", "medication")]:
            client.post(
                f"/items/{topic_id}", json={"name": name, "type": item_type}, headers=alice_headers
            )

        data = client.get(
            "/search", params={"q": "cyp", "type": "ENZYME"}, headers=alice_headers
        ).json()
        assert [i["name"] for i in data["items"]] == ["CYP3A4"]

    def test_results_scoped_to_caller(self, client, alice_headers, bob_headers, topic_id):
        client.post(
            f"/items/{topic_id}", json={"name": "Aspirin", "type": "medication"}, headers=alice_headers
        )
        data = client.get("/search", params={"q": "aspirin"}, headers=bob_headers).json()
        assert data["items"] == []


class TestUpload:
    @pytest.fixture
    def media(self, app, tmp_path):
        store = MediaStore(tmp_path / "uploads", max_bytes=64)
        app.dependency_overrides[get_media_store] = lambda: store
        yield store
        app.dependency_overrides.clear()

    def test_upload_image(self, client, alice_headers, media):
        response = client.post(
            "/items/upload",
            files={"image": ("mol.png", b"\x89PNG fake", "image/png")},
            headers=alice_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["image_url"] == f"/media/items/{data['public_id']}.png"
        assert (media.folder_dir / f"{data['public_id']}.png").exists()

    def test_missing_file(self, client, alice_headers, media):
        response = client.post("/items/upload", headers=alice_headers)
        assert response.status_code == 400

    def test_unsupported_type(self, client, alice_headers, media):
        response = client.post(
            "/items/upload",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=alice_headers,
        )
        assert response.status_code == 400

    def test_too_large(self, client, alice_headers, media):
        response = client.post(
            "/items/upload",
            files={"image": ("big.jpg", b"x" * 65, "image/jpeg")},
            headers=alice_headers,
        )
        assert response.status_code == 413

    def test_delete_item_removes_hosted_image(self, client, alice_headers, media, topic_id):
        upload = client.post(
            "/items/upload",
            files={"image": ("mol.png", b"png", "image/png")},
            headers=alice_headers,
        ).json()
        item = client.post(
            f"/items/{topic_id}",
            json={"name": "Caffeine", "type": "molecule", "image_url": upload["image_url"]},
            headers=alice_headers,
        ).json()

        client.delete(f"/items/{item['id']}", headers=alice_headers)

        assert not any(media.folder_dir.iterdir())

    def test_foreign_image_url_leaves_other_uploads_alone(
        self, client, alice_headers, bob_headers, media, topic_id
    ):
        upload = client.post(
            "/items/upload",
            files={"image": ("mol.png", b"png", "image/png")},
            headers=alice_headers,
        ).json()

        chapter = client.post("/chapters", json={"name": "Bob's"}, headers=bob_headers).json()
        topic = client.post(
            f"/topics/{chapter['id']}", json={"name": "Mine"}, headers=bob_headers
        ).json()
        item = client.post(
            f"/items/{topic['id']}",
            json={"name": "Wild", "type": "molecule", "image_url": "https://example.com/*.png"},
            headers=bob_headers,
        ).json()

        response = client.delete(f"/items/{item['id']}", headers=bob_headers)

        assert response.status_code == 200
        assert (media.folder_dir / f"{upload['public_id']}.png").exists()

    def test_failed_image_delete_does_not_fail_item_delete(
        self, client, alice_headers, app, topic_id
    ):
        class BrokenStore(MediaStore):
            def delete_for_url(self, url):
                raise MediaError("disk on fire")

        app.dependency_overrides[get_media_store] = lambda: BrokenStore("unused")
        try:
            item = client.post(
                f"/items/{topic_id}",
                json={"name": "Caffeine", "type": "molecule", "image_url": "/media/items/x.png"},
                headers=alice_headers,
            ).json()
            response = client.delete(f"/items/{item['id']}", headers=alice_headers)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200

    def test_image_released_after_item_delete_commits(
        self, client, alice_headers, app, topic_id, tmp_path
    ):
        events = []

        class RecordingStore(MediaStore):
            def delete_for_url(self, url):
                events.append("delete_image")
                return False

        def on_commit(session):
            events.append("commit")

        item = client.post(
            f"/items/{topic_id}",
            json={"name": "Caffeine", "type": "molecule", "image_url": "/media/items/x.png"},
            headers=alice_headers,
        ).json()

        app.dependency_overrides[get_media_store] = lambda: RecordingStore(tmp_path)
        event.listen(Session, "after_commit", on_commit)
        try:
            client.delete(f"/items/{item['id']}", headers=alice_headers)
        finally:
            event.remove(Session, "after_commit", on_commit)
            app.dependency_overrides.clear()

        assert events[:2] == ["commit", "delete_image"]
