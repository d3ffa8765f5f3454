from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

from libs.core.exceptions import NotFoundError, TransientRemoteError, ValidationError
from libs.core.settings import Settings, get_settings
from libs.remote import BlobStorage

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_object_key(path: str) -> str:
    """Reject keys that could escape the storage root."""
    key = (path or "").strip("/")
    if not key:
        raise ValidationError("Empty storage path")
    for segment in key.split("/"):
        if segment in (".", "..") or not _SEGMENT_RE.match(segment):
            raise ValidationError(f"Invalid storage path: {path!r}")
    return key


class LocalBlobStorage(BlobStorage):
    """File system based blob storage, one directory per user."""

    def __init__(self, root: Path, public_url: str) -> None:
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "LocalBlobStorage":
        settings = settings or get_settings()
        return cls(settings.blob_dir, settings.public_url)

    # ------------------------------------------------------------------
    # public API
    async def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self.resolve(path)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise TransientRemoteError(f"Failed to store {path}: {exc.strerror or exc}") from exc
        logger.debug("Stored blob", extra={"path": path, "content_type": content_type})

    def get_public_url(self, path: str) -> str:
        if not self.public_url:
            return ""
        return f"{self.public_url}/{validate_object_key(path)}"

    async def remove(self, path: str) -> None:
        target = self.resolve(path)
        try:
            await asyncio.to_thread(target.unlink)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Attachment {path} does not exist") from exc
        except OSError as exc:
            raise TransientRemoteError(f"Failed to delete {path}: {exc.strerror or exc}") from exc

    def resolve(self, path: str) -> Path:
        return self.root / validate_object_key(path)

    # ------------------------------------------------------------------
    # helpers
    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".part")
        tmp.write_bytes(data)
        tmp.replace(target)


__all__ = ["LocalBlobStorage", "validate_object_key"]
