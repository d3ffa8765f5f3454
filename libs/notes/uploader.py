"""Concurrent attachment uploads into blob storage.

Each file in a batch is uploaded on its own; a failing file never stops the
others. The batch settles only after every upload has finished, and the
report separates what made it (with a public URL) from what did not.
"""

from __future__ import annotations

import asyncio
import logging
import math
import mimetypes
import os
import re
import time
import uuid
from typing import Callable, List, Sequence, Tuple

from libs.core.exceptions import (
    DomainError,
    NotFoundError,
    TransientRemoteError,
    ValidationError,
)
from libs.core.models import (
    DEFAULT_MIME_TYPE,
    Attachment,
    FileUpload,
    UploadFailure,
    UploadReport,
)
from libs.core.settings import Settings, get_settings
from libs.core.types import Result
from libs.notes.editor import EditorBuffer
from libs.remote import AuthSession, BlobStorage

logger = logging.getLogger(__name__)

_EXT_RE = re.compile(r"[^a-z0-9.]")
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _random_token() -> str:
    return uuid.uuid4().hex[:12]


def guess_content_type(filename: str | None, provided: str | None = None) -> str:
    if provided:
        return provided
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or DEFAULT_MIME_TYPE


def describe_size(size_bytes: int) -> str:
    """Human readable size: ``0 Bytes``, ``512 Bytes``, ``1.5 KB``, ``2 MB``."""
    if size_bytes <= 0:
        return "0 Bytes"
    exp = min(int(math.floor(math.log(size_bytes, 1024))), len(_SIZE_UNITS) - 1)
    value = ("%.2f" % (size_bytes / 1024**exp)).rstrip("0").rstrip(".")
    return f"{value} {_SIZE_UNITS[exp]}"


def file_kind(mime_type: str) -> str:
    """Coarse category used to pick an icon for an attachment."""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    if "text" in mime_type or "document" in mime_type:
        return "document"
    return "file"


class AttachmentUploader:
    """Uploads files for the signed-in user and removes them again."""

    def __init__(
        self,
        storage: BlobStorage,
        auth: AuthSession,
        settings: Settings | None = None,
        now_millis: Callable[[], int] = _epoch_millis,
        token: Callable[[], str] = _random_token,
    ) -> None:
        self.storage = storage
        self.auth = auth
        self.settings = settings or get_settings()
        self._now_millis = now_millis
        self._token = token

    def build_path(self, user_id: str, filename: str) -> str:
        """``<user>/<capture millis>-<random token><.ext>``.

        The random token keeps paths unique for identical names uploaded in
        the same millisecond.
        """
        ext = _EXT_RE.sub("", os.path.splitext(filename)[1].lower())
        if ext == ".":
            ext = ""
        return f"{user_id}/{self._now_millis()}-{self._token()}{ext}"

    # ------------------------------------------------------------------
    async def upload_many(self, files: Sequence[FileUpload]) -> UploadReport:
        """Upload every file concurrently and wait for all of them to settle.

        ``succeeded`` is ordered by completion time, ties broken by the order
        the uploads were started in.
        """
        user_id = self.auth.require_user()
        loop = asyncio.get_running_loop()
        finished: List[Tuple[float, int, Attachment]] = []

        async def _tracked(index: int, upload: FileUpload) -> Attachment:
            attachment = await self._upload_one(user_id, upload)
            finished.append((loop.time(), index, attachment))
            return attachment

        outcomes: List[Result[Attachment]] = await asyncio.gather(
            *(_tracked(i, f) for i, f in enumerate(files)), return_exceptions=True
        )

        report = UploadReport()
        for upload, outcome in zip(files, outcomes):
            if isinstance(outcome, DomainError):
                report.failed.append(UploadFailure(name=upload.name, reason=str(outcome)))
            elif isinstance(outcome, Exception):
                # the other files of the batch may already be stored; keep their report
                logger.error(
                    "Upload crashed", exc_info=outcome, extra={"file_name": upload.name}
                )
                reason = str(outcome) or type(outcome).__name__
                report.failed.append(UploadFailure(name=upload.name, reason=reason))
            elif isinstance(outcome, BaseException):
                raise outcome
        report.succeeded = [attachment for _, _, attachment in sorted(finished, key=lambda f: f[:2])]
        logger.info(
            "Upload batch settled: %d ok, %d failed",
            len(report.succeeded),
            len(report.failed),
            extra={"user_id": user_id},
        )
        return report

    async def upload_to(self, buffer: EditorBuffer, files: Sequence[FileUpload]) -> UploadReport:
        """Upload ``files`` and append the successes to the buffer's working copy.

        If the buffer was closed, saved or switched to another note before the
        batch settled, nothing is appended and the report is marked
        ``discarded``; its attachments can be re-attached by a later edit.
        """
        ticket = buffer.ticket()
        report = await self.upload_many(files)
        if report.succeeded and not buffer.append_attachments(report.succeeded, ticket):
            report.discarded = True
            logger.info(
                "Editor moved on, %d uploaded attachments not merged",
                len(report.succeeded),
                extra={"note_id": ticket.note_id},
            )
        return report

    async def remove(self, attachment: Attachment) -> None:
        self.auth.require_user()
        try:
            await self.storage.remove(attachment.path)
        except DomainError as exc:
            logger.warning("Removing attachment failed: %s", exc, extra={"path": attachment.path})
            raise
        logger.info("Removed attachment", extra={"path": attachment.path})

    async def remove_from(self, buffer: EditorBuffer, attachment: Attachment) -> bool:
        """Delete the blob, then drop it from the buffer's working copy.

        A failed delete leaves the working copy untouched. A blob that is
        already gone counts as deleted. Returns whether the buffer changed.
        """
        ticket = buffer.ticket()
        try:
            await self.remove(attachment)
        except NotFoundError:
            logger.info("Attachment already gone", extra={"path": attachment.path})
        return buffer.drop_attachment(attachment.path, ticket)

    # ------------------------------------------------------------------
    async def _upload_one(self, user_id: str, upload: FileUpload) -> Attachment:
        if not upload.name:
            raise ValidationError("File has no name")
        limit = self.settings.max_upload_bytes
        if limit and upload.size > limit:
            raise ValidationError(
                f"{upload.name} is {describe_size(upload.size)}, limit is {describe_size(limit)}"
            )
        path = self.build_path(user_id, upload.name)
        content_type = guess_content_type(upload.name, upload.mime_type)
        await self.storage.put(path, upload.data, content_type)
        url = self.storage.get_public_url(path)
        if not url:
            await self._discard_orphan(path)
            raise TransientRemoteError(f"No public URL for {upload.name}")
        return Attachment(
            path=path,
            name=upload.name,
            url=url,
            mime_type=content_type,
            size_bytes=upload.size,
        )

    async def _discard_orphan(self, path: str) -> None:
        try:
            await self.storage.remove(path)
        except DomainError as exc:
            logger.warning("Could not clean up orphaned blob: %s", exc, extra={"path": path})


__all__ = [
    "AttachmentUploader",
    "describe_size",
    "file_kind",
    "guess_content_type",
]
