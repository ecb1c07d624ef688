from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from uuid import uuid4

from src.vaxtrack.config import settings
from src.vaxtrack.domain.models.child import StoredPhoto

logger = logging.getLogger(__name__)

ALLOWED_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


class PhotoStorageBackend(ABC):
    @abstractmethod
    def save(self, content: bytes, *, suffix: str) -> StoredPhoto:
        """Persist image bytes and return the public URL and storage key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Best-effort deletion of a previously saved photo."""


class LocalPhotoStorageBackend(PhotoStorageBackend):
    """Stores photos under PHOTO_UPLOAD_DIR and serves them from /uploads."""

    def __init__(self, base: Optional[Path] = None, *, url_prefix: str = "/uploads/children") -> None:
        self._base: Path = base or settings.photo_upload_dir
        self._url_prefix = url_prefix.rstrip("/")

    def save(self, content: bytes, *, suffix: str) -> StoredPhoto:
        self._base.mkdir(parents=True, exist_ok=True)
        key = f"{uuid4().hex}{suffix.lower()}"
        (self._base / key).write_bytes(content)
        return StoredPhoto(url=f"{self._url_prefix}/{key}", key=key)

    def delete(self, key: str) -> None:
        # Keys are bare file names; anything with a path component is ignored.
        if not key or Path(key).name != key:
            return
        path = self._base / key
        if path.exists():
            try:
                path.unlink()
            except OSError:
                logger.exception("Failed to delete photo %s", key)


photo_storage_backend: PhotoStorageBackend = LocalPhotoStorageBackend()
