"""Tests for the filesystem image store (F1)."""

import pytest

from pharmastudy.core.media import (
    MediaStore,
    MediaTooLargeError,
    UnsupportedMediaError,
)


@pytest.fixture
def store(tmp_path):
    return MediaStore(tmp_path / "media", url_prefix="/media", max_bytes=1024)


class TestSave:
    def test_save_returns_url_and_public_id(self, store):
        url, public_id = store.save("aspirin.PNG", b"\x89PNG data")

        assert url == f"/media/items/{public_id}.png"
        assert (store.folder_dir / f"{public_id}.png").read_bytes() == b"\x89PNG data"

    def test_unsupported_extension(self, store):
        with pytest.raises(UnsupportedMediaError):
            store.save("notes.pdf", b"%PDF")

    def test_missing_extension(self, store):
        with pytest.raises(UnsupportedMediaError):
            store.save("", b"data")

    def test_too_large(self, store):
        with pytest.raises(MediaTooLargeError):
            store.save("big.jpg", b"x" * 1025)


class TestDelete:
    def test_delete_removes_file(self, store):
        url, public_id = store.save("a.webp", b"img")

        assert store.delete_for_url(url) is True
        assert not (store.folder_dir / f"{public_id}.webp").exists()

    def test_delete_unknown_url(self, store):
        assert store.delete_for_url("/media/items/" + "0" * 32 + ".png") is False

    def test_wildcards_never_match(self, store):
        store.save("a.png", b"img")

        assert store.delete_for_url("/media/items/*.png") is False
        assert store.delete_for_url("https://example.com/*.png") is False
        assert len(list(store.folder_dir.iterdir())) == 1

    def test_data_uri_is_not_hosted(self, store):
        assert store.delete_for_url("data:image/png;base64,AAAA") is False

    def test_hosted_name_for_url(self, store):
        url, public_id = store.save("a.jpg", b"img")

        assert store.hosted_name_for_url(url) == f"{public_id}.jpg"
        assert store.hosted_name_for_url(f"https://cdn.test/items/{public_id}.jpg") is None
        assert store.hosted_name_for_url(f"/media/items/../{public_id}.jpg") is None
