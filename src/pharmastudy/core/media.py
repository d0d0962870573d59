"""Image storage for study items.

Uploaded images are written under a media directory and served by the API
under a URL prefix. Item deletion asks the store to release the image;
that call may fail and callers treat it as best-effort.
"""

from __future__ import annotations

import re
import uuid
from pathlib import Path

import structlog

from pharmastudy.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})

# Names written by MediaStore.save: uuid4 hex plus an allowed extension
HOSTED_NAME_PATTERN = re.compile(
    r"[0-9a-f]{32}\.(?:" + "|".join(sorted(ALLOWED_EXTENSIONS)) + r")"
)


class MediaError(Exception):
    """Error storing or removing an image."""

    pass


class UnsupportedMediaError(MediaError):
    """File type not accepted."""

    pass


class MediaTooLargeError(MediaError):
    """File exceeds the upload limit."""

    pass


class MediaStore:
    """Filesystem-backed image host."""

    def __init__(
        self,
        media_dir: Path | str,
        url_prefix: str = "/media",
        max_bytes: int = 5 * 1024 * 1024,
        folder: str = "items",
    ):
        self.media_dir = Path(media_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.folder = folder

    @classmethod
    def from_config(cls) -> MediaStore:
        server = load_app_config().server
        return cls(
            media_dir=server.media_dir,
            url_prefix=server.media_url_prefix,
            max_bytes=server.max_upload_bytes,
        )

    @property
    def folder_dir(self) -> Path:
        return self.media_dir / self.folder

    def save(self, filename: str, content: bytes) -> tuple[str, str]:
        """Store an image.

        Args:
            filename: Original file name (used for its extension)
            content: Raw bytes

        Returns:
            tuple of (url, public_id)

        Raises:
            UnsupportedMediaError: If the extension is not an accepted image type
            MediaTooLargeError: If content exceeds max_bytes
        """
        extension = Path(filename or "").suffix.lower().lstrip(".")
        if extension not in ALLOWED_EXTENSIONS:
            raise UnsupportedMediaError(
                f"Unsupported image type '{extension or 'none'}'. "
                f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
            )
        if len(content) > self.max_bytes:
            raise MediaTooLargeError(f"Image exceeds {self.max_bytes} bytes")

        public_id = uuid.uuid4().hex
        self.folder_dir.mkdir(parents=True, exist_ok=True)
        path = self.folder_dir / f"{public_id}.{extension}"
        path.write_bytes(content)

        logger.info("media.saved", public_id=public_id, size=len(content))
        return f"{self.url_prefix}/{self.folder}/{path.name}", public_id

    def hosted_name_for_url(self, url: str) -> str | None:
        """File name behind a URL this store handed out, None for anything else."""
        prefix = f"{self.url_prefix}/{self.folder}/"
        if not url.startswith(prefix):
            return None
        name = url[len(prefix):]
        if not HOSTED_NAME_PATTERN.fullmatch(name):
            return None
        return name

    def delete_for_url(self, url: str) -> bool:
        """Remove the stored image behind a URL.

        Only URLs returned by ``save`` are acted on; external links and
        data URIs are left alone.

        Returns:
            True if a file was removed, False if the URL is not hosted here

        Raises:
            MediaError: If the file exists but cannot be removed
        """
        name = self.hosted_name_for_url(url)
        if name is None:
            return False

        path = self.folder_dir / name
        if not path.is_file():
            return False

        try:
            path.unlink()
        except OSError as e:
            raise MediaError(f"Could not delete image {name}: {e}") from e

        logger.info("media.deleted", public_id=path.stem)
        return True
