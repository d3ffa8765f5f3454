"""Working copy of the note currently open in the editor.

State machine::

    CLOSED -> VIEWING -> EDITING -> SAVING -> VIEWING
       ^________________________________________|  (close from anywhere)

Edits only ever touch the working copy; the committed record changes through
:meth:`NoteRecordStore.update` alone. Asynchronous work that targets the
buffer (uploads, saves) captures an :class:`EditTicket` first and its results
are dropped if the buffer moved on in the meantime.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from libs.core.exceptions import InvalidStateError
from libs.core.models import Attachment, Note, NoteFields
from libs.notes.record_store import REMOVED, CLEARED, CollectionChange, NoteRecordStore

logger = logging.getLogger(__name__)


class EditorState(str, enum.Enum):
    CLOSED = "closed"
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"


@dataclass(frozen=True)
class EditTicket:
    """Identifies one working copy of one note."""

    note_id: str
    generation: int


class EditorBuffer:
    """Holds at most one note's displayed fields and working copy."""

    def __init__(self, store: NoteRecordStore) -> None:
        self.store = store
        self.state = EditorState.CLOSED
        self.note_id: Optional[str] = None
        self.displayed: Optional[NoteFields] = None
        self._title = ""
        self._content = ""
        self._attachments: List[Attachment] = []
        self._generation = 0
        self._unsubscribe = store.subscribe(self._on_collection_change)

    # ------------------------------------------------------------------
    # transitions
    def open(self, note: Note) -> None:
        """Show ``note``; any working copy of a previous note is discarded."""
        if self.state is EditorState.EDITING:
            logger.info("Discarding unsaved edits", extra={"note_id": self.note_id})
        self._bump()
        self.note_id = note.id
        self.displayed = note.fields
        self._reset_working_copy()
        self.state = EditorState.VIEWING

    def begin_edit(self) -> None:
        self._expect(EditorState.VIEWING)
        if self.displayed is None:
            raise InvalidStateError("Editor has no note to edit")
        self._bump()
        self._title = self.displayed.title
        self._content = self.displayed.content
        self._attachments = list(self.displayed.attachments)
        self.state = EditorState.EDITING

    def cancel_edit(self) -> None:
        self._expect(EditorState.EDITING)
        self._bump()
        self._reset_working_copy()
        self.state = EditorState.VIEWING

    async def commit(self) -> Note:
        """Save the working copy through the store.

        On failure the buffer goes back to EDITING with the working copy
        untouched and the error propagates, so the user can retry.
        """
        self._expect(EditorState.EDITING)
        ticket = self.ticket()
        fields = self.working_copy
        self.state = EditorState.SAVING
        try:
            note = await self.store.update(ticket.note_id, fields)
        except BaseException:
            if self.is_current(ticket):
                self.state = EditorState.EDITING
            raise
        if self.is_current(ticket):
            self._bump()
            self.displayed = note.fields
            self._reset_working_copy()
            self.state = EditorState.VIEWING
        return note

    def close(self) -> None:
        self._bump()
        self.note_id = None
        self.displayed = None
        self._reset_working_copy()
        self.state = EditorState.CLOSED

    def dispose(self) -> None:
        self.close()
        self._unsubscribe()

    # ------------------------------------------------------------------
    # working copy
    @property
    def working_copy(self) -> NoteFields:
        self._expect(EditorState.EDITING, EditorState.SAVING)
        return NoteFields(
            title=self._title, content=self._content, attachments=tuple(self._attachments)
        )

    @property
    def current_fields(self) -> Optional[NoteFields]:
        """What the user sees right now: the working copy while editing."""
        if self.state in (EditorState.EDITING, EditorState.SAVING):
            return self.working_copy
        return self.displayed

    def set_title(self, title: str) -> None:
        self._expect(EditorState.EDITING)
        self._title = title

    def set_content(self, content: str) -> None:
        self._expect(EditorState.EDITING)
        self._content = content

    def set_attachments(self, attachments: Iterable[Attachment]) -> None:
        """Replace the attachment list, e.g. to re-attach a discarded upload."""
        self._expect(EditorState.EDITING)
        unique = {}
        for attachment in attachments:
            unique.setdefault(attachment.path, attachment)
        self._attachments = list(unique.values())

    def append_attachments(self, attachments: Iterable[Attachment], ticket: EditTicket) -> bool:
        """Append uploaded attachments; returns False if the ticket is stale."""
        if not self.is_current(ticket) or self.state is not EditorState.EDITING:
            return False
        known = {a.path for a in self._attachments}
        for attachment in attachments:
            if attachment.path not in known:
                self._attachments.append(attachment)
                known.add(attachment.path)
        return True

    def drop_attachment(self, path: str, ticket: EditTicket) -> bool:
        """Remove an attachment by storage path; returns False if the ticket is stale."""
        if not self.is_current(ticket) or self.state is not EditorState.EDITING:
            return False
        self._attachments = [a for a in self._attachments if a.path != path]
        return True

    # ------------------------------------------------------------------
    # generation guard
    def ticket(self) -> EditTicket:
        self._expect(EditorState.EDITING)
        if self.note_id is None:
            raise InvalidStateError("Editor has no open note")
        return EditTicket(note_id=self.note_id, generation=self._generation)

    def is_current(self, ticket: EditTicket) -> bool:
        return ticket.generation == self._generation and ticket.note_id == self.note_id

    # ------------------------------------------------------------------
    # helpers
    def _on_collection_change(self, change: CollectionChange) -> None:
        if self.note_id is None:
            return
        if change.kind == CLEARED or (change.kind == REMOVED and change.note_id == self.note_id):
            logger.info("Open note is gone, closing editor", extra={"note_id": self.note_id})
            self.close()

    def _reset_working_copy(self) -> None:
        self._title = ""
        self._content = ""
        self._attachments = []

    def _bump(self) -> None:
        self._generation += 1

    def _expect(self, *states: EditorState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidStateError(f"Editor is {self.state.value}, expected {allowed}")


__all__ = ["EditorBuffer", "EditorState", "EditTicket"]
