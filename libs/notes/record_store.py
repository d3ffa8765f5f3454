"""Authoritative in-memory collection of the signed-in user's notes.

The store is the only writer of the collection. Every mutation goes through
the remote backend first; the local list changes only after the backend
acknowledges. Consumers read immutable snapshots and can subscribe to
:class:`CollectionChange` events.

Concurrent saves of the same note are not versioned: whichever
acknowledgment arrives last is what the collection ends up holding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from libs.core.exceptions import DomainError, NotFoundError
from libs.core.models import Note, NoteFields, utc_now
from libs.core.settings import Settings, get_settings
from libs.core.types import Unsubscribe
from libs.remote import AuthSession, NotesBackend

logger = logging.getLogger(__name__)

LOADED = "loaded"
CREATED = "created"
UPDATED = "updated"
REMOVED = "removed"
CLEARED = "cleared"


@dataclass(frozen=True)
class CollectionChange:
    """Published after every acknowledged mutation."""

    kind: str
    notes: Tuple[Note, ...]
    note_id: Optional[str] = None


Listener = Callable[[CollectionChange], None]


class NoteRecordStore:
    """Owns the note collection and keeps it in line with the remote store."""

    def __init__(
        self,
        backend: NotesBackend,
        auth: AuthSession,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.backend = backend
        self.auth = auth
        self.settings = settings or get_settings()
        self._clock = clock
        self._notes: List[Note] = []
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # read side
    @property
    def notes(self) -> Tuple[Note, ...]:
        return tuple(self._notes)

    def __len__(self) -> int:
        return len(self._notes)

    def get(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def subscribe(self, listener: Listener) -> Unsubscribe:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # mutations
    async def load(self) -> Tuple[Note, ...]:
        """Replace the collection with the remote one.

        A failed fetch leaves the previous collection in place.
        """
        user_id = self.auth.require_user()
        try:
            notes = await self.backend.list_notes(user_id)
        except DomainError as exc:
            logger.warning("Loading notes failed: %s", exc, extra={"user_id": user_id})
            raise
        if self.auth.current_user_id != user_id:
            # session changed while the fetch was in flight
            logger.info("Discarding notes fetched for a previous session")
            return self.notes
        self._notes = _ordered(notes)
        logger.info("Loaded %d notes", len(self._notes), extra={"user_id": user_id})
        self._publish(LOADED)
        return self.notes

    async def create(self) -> Note:
        user_id = self.auth.require_user()
        fields = NoteFields(title=self.settings.default_note_title)
        try:
            note = await self.backend.insert_note(user_id, fields)
        except DomainError as exc:
            logger.warning("Creating note failed: %s", exc, extra={"user_id": user_id})
            raise
        self._notes = _ordered([note, *(n for n in self._notes if n.id != note.id)])
        logger.info("Created note", extra={"note_id": note.id})
        self._publish(CREATED, note.id)
        return note

    async def update(self, note_id: str, fields: NoteFields) -> Note:
        """Persist ``fields`` and, once acknowledged, make them authoritative."""
        user_id = self.auth.require_user()
        current = self.get(note_id)
        if current is None:
            raise NotFoundError(f"Note {note_id} is not in the collection")
        stamp = max(self._clock(), current.updated_at)
        try:
            await self.backend.update_note(note_id, fields, stamp, user_id=user_id)
        except NotFoundError:
            logger.warning("Note vanished remotely", extra={"note_id": note_id})
            self._drop(note_id)
            raise
        except DomainError as exc:
            logger.warning("Saving note failed: %s", exc, extra={"note_id": note_id})
            raise
        latest = self.get(note_id)
        if latest is None:
            # removed locally while the save was in flight
            raise NotFoundError(f"Note {note_id} was removed while saving")
        # keep updated_at non-decreasing when acknowledgments arrive out of order
        updated = latest.with_fields(fields, max(stamp, latest.updated_at))
        self._notes = _ordered(updated if n.id == note_id else n for n in self._notes)
        logger.info("Saved note", extra={"note_id": note_id})
        self._publish(UPDATED, note_id)
        return updated

    async def remove(self, note_id: str) -> None:
        user_id = self.auth.require_user()
        if self.get(note_id) is None:
            raise NotFoundError(f"Note {note_id} is not in the collection")
        try:
            await self.backend.delete_note(note_id, user_id=user_id)
        except NotFoundError:
            self._drop(note_id)
            raise
        except DomainError as exc:
            logger.warning("Deleting note failed: %s", exc, extra={"note_id": note_id})
            raise
        logger.info("Deleted note", extra={"note_id": note_id})
        self._drop(note_id)

    def clear(self) -> None:
        """Forget every note, e.g. after the user signed out."""
        self._notes = []
        self._publish(CLEARED)

    # ------------------------------------------------------------------
    # helpers
    def _drop(self, note_id: str) -> None:
        self._notes = [n for n in self._notes if n.id != note_id]
        self._publish(REMOVED, note_id)

    def _publish(self, kind: str, note_id: Optional[str] = None) -> None:
        change = CollectionChange(kind=kind, notes=self.notes, note_id=note_id)
        for listener in list(self._listeners):
            listener(change)


def _ordered(notes: Iterable[Note]) -> List[Note]:
    """Unique by id (first wins), newest ``updated_at`` first, stable on ties."""
    seen: Dict[str, Note] = {}
    for note in notes:
        seen.setdefault(note.id, note)
    return sorted(seen.values(), key=lambda n: n.updated_at, reverse=True)


__all__ = [
    "NoteRecordStore",
    "CollectionChange",
    "LOADED",
    "CREATED",
    "UPDATED",
    "REMOVED",
    "CLEARED",
]
