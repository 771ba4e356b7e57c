from __future__ import annotations

from pathlib import Path
from typing import Optional
from uuid import uuid4

from party_profiles.app.config import Settings
from party_profiles.app.errors import FileStoreError
from party_profiles.app.logging import get_logger

logger = get_logger(__name__)

_ALLOWED_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic"}


class LocalFileStore:
    # Writes uploaded blobs under root_dir and returns a URL under base_url; only the URL is kept in answers.

    def __init__(self, root_dir: str, base_url: str = "/uploads"):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalFileStore":
        return cls(root_dir=settings.uploads_dir, base_url=settings.uploads_base_url)

    def upload(self, blob: bytes, filename: Optional[str] = None) -> str:
        if not blob:
            raise FileStoreError("Refusing to store an empty upload.")

        suffix = Path(filename).suffix.lower() if filename else ""
        if suffix not in _ALLOWED_SUFFIXES:
            suffix = ".bin"
        key = f"{uuid4().hex}{suffix}"

        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            (self.root_dir / key).write_bytes(blob)
        except OSError as e:
            raise FileStoreError(f"Failed to store upload: {e}") from e

        logger.info("upload stored", extra={"key": key, "size": len(blob)})
        return f"{self.base_url}/{key}"
