"""Dashboard facade: one signed-in user's notes, editor and uploads.

Wires the record store, editor buffer, uploader and search index together
and reports the outcome of every user action as a :class:`Notice`. Failures
carry the error message from the remote store; nothing is retried
automatically.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from pydantic import BaseModel

from libs.core.exceptions import DomainError, NotFoundError
from libs.core.i18n import I18n
from libs.core.models import (
    Attachment,
    CollectionStats,
    FileUpload,
    Note,
    NoteStats,
    Notice,
    UploadReport,
)
from libs.core.settings import Settings, get_settings
from libs.notes import AttachmentUploader, EditorBuffer, NoteRecordStore, SearchIndex
from libs.notes.stats import collection_stats, note_stats
from libs.remote import AuthSession, BlobStorage, NotesBackend, display_name

logger = logging.getLogger(__name__)

DESTRUCTIVE = "destructive"


class Dashboard(BaseModel):
    user: str
    totals: CollectionStats
    notes: Tuple[Note, ...]
    query: str = ""
    editor_state: str
    open_note_id: Optional[str] = None
    editor_stats: Optional[NoteStats] = None


class NotesWorkspace:
    """Everything the dashboard needs for one session."""

    def __init__(
        self,
        backend: NotesBackend,
        storage: BlobStorage,
        auth: AuthSession,
        settings: Settings | None = None,
        i18n: I18n | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.auth = auth
        self.store = NoteRecordStore(backend, auth, self.settings)
        self.editor = EditorBuffer(self.store)
        self.uploader = AttachmentUploader(storage, auth, self.settings)
        self.search_index = SearchIndex(self.store)
        self.i18n = i18n or I18n(self.settings.language)

    # ------------------------------------------------------------------
    # collection
    async def start(self) -> Optional[Notice]:
        """Initial load; only a failure produces a notice."""
        try:
            await self.store.load()
        except DomainError as exc:
            return self._failed("load_error", exc)
        return None

    async def create_note(self) -> Notice:
        """Create a note and open it straight in edit mode."""
        try:
            note = await self.store.create()
        except DomainError as exc:
            return self._failed("create_error", exc)
        self.editor.open(note)
        self.editor.begin_edit()
        return self._notify("create_ok")

    async def delete_note(self, note_id: str) -> Notice:
        try:
            await self.store.remove(note_id)
        except DomainError as exc:
            return self._failed("delete_error", exc)
        return self._notify("delete_ok")

    def search(self, query: str) -> Tuple[Note, ...]:
        return self.search_index.set_query(query)

    # ------------------------------------------------------------------
    # editor
    def open_note(self, note_id: str) -> Note:
        note = self.store.get(note_id)
        if note is None:
            raise NotFoundError(f"Note {note_id} is not in the collection")
        self.editor.open(note)
        return note

    def edit(self) -> None:
        self.editor.begin_edit()

    def cancel(self) -> None:
        self.editor.cancel_edit()

    def close(self) -> None:
        self.editor.close()

    async def save(self) -> Notice:
        try:
            await self.editor.commit()
        except DomainError as exc:
            return self._failed("save_error", exc)
        return self._notify("save_ok")

    async def upload(self, files: Sequence[FileUpload]) -> Notice:
        try:
            report = await self.uploader.upload_to(self.editor, files)
        except DomainError as exc:
            return self._failed("upload_error", exc)
        return self._upload_notice(report)

    async def remove_attachment(self, attachment: Attachment) -> Notice:
        try:
            await self.uploader.remove_from(self.editor, attachment)
        except DomainError as exc:
            return self._failed("remove_error", exc)
        return self._notify("remove_ok")

    # ------------------------------------------------------------------
    # session
    def dashboard(self) -> Dashboard:
        fields = self.editor.current_fields
        return Dashboard(
            user=display_name(self.auth.email),
            totals=collection_stats(self.store.notes),
            notes=self.search_index.view,
            query=self.search_index.query,
            editor_state=self.editor.state.value,
            open_note_id=self.editor.note_id,
            editor_stats=(
                note_stats(fields.content, self.settings.words_per_minute)
                if fields is not None
                else None
            ),
        )

    def sign_out(self) -> Notice:
        self.editor.close()
        self.auth.sign_out()
        self.store.clear()
        return self._notify("signed_out")

    # ------------------------------------------------------------------
    # helpers
    def _upload_notice(self, report: UploadReport) -> Notice:
        if report.discarded:
            return self._notify("upload_discarded")
        reason = "; ".join(f"{f.name}: {f.reason}" for f in report.failed)
        if not report.failed:
            return self._notify("upload_ok", count=len(report.succeeded))
        if report.succeeded:
            return self._notify(
                "upload_partial",
                variant=DESTRUCTIVE,
                count=len(report.succeeded),
                failed=len(report.failed),
                reason=reason,
            )
        return self._notify("upload_error", variant=DESTRUCTIVE, reason=reason)

    def _failed(self, key: str, exc: DomainError) -> Notice:
        logger.info("%s: %s", key, exc)
        return self._notify(key, variant=DESTRUCTIVE, reason=str(exc))

    def _notify(self, key: str, variant: str = "default", **params) -> Notice:
        return Notice(
            title=self.i18n.t(f"{key}.title"),
            description=self.i18n.t(f"{key}.desc", **params),
            variant=variant,
        )


__all__ = ["NotesWorkspace", "Dashboard"]
