"""Notes backend persisting records in Postgres through SQLAlchemy."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from libs.core.exceptions import NotFoundError, TransientRemoteError, ValidationError
from libs.core.models import Attachment, Note, NoteFields
from libs.remote import NotesBackend

from . import models
from .database import get_session
from .repositories import NoteRepo

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _aware(value: datetime) -> datetime:
    # SQLite drops the offset; every timestamp we write is UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _attachments(note_id: str, records: Iterable[Dict[str, Any]]) -> Tuple[Attachment, ...]:
    """Valid attachment records of a row; malformed ones are logged and skipped."""
    valid = []
    for record in records:
        try:
            valid.append(Attachment.from_record(record))
        except ValidationError as exc:
            logger.warning("Skipping stored attachment: %s", exc, extra={"note_id": note_id})
    return tuple(valid)


def to_domain(row: models.Note) -> Note:
    return Note(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        content=row.content,
        attachments=_attachments(row.id, row.attachments or []),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlNotesBackend(NotesBackend):
    """:class:`NotesBackend` over the ``notes`` table."""

    def __init__(
        self,
        session_factory: SessionFactory = get_session,
        repo_factory: Callable[[AsyncSession], NoteRepo] = NoteRepo,
    ) -> None:
        self._session = session_factory
        self._repo = repo_factory

    async def list_notes(self, user_id: str) -> List[Note]:
        try:
            async with self._session() as session:
                rows = await self._repo(session).list_for_user(user_id)
                return [to_domain(row) for row in rows]
        except SQLAlchemyError as exc:
            raise TransientRemoteError(f"Failed to load notes: {exc}") from exc

    async def insert_note(self, user_id: str, fields: NoteFields) -> Note:
        try:
            async with self._session() as session:
                row = await self._repo(session).create(
                    user_id=user_id,
                    title=fields.title,
                    content=fields.content,
                    attachments=[a.to_record() for a in fields.attachments],
                )
                return to_domain(row)
        except SQLAlchemyError as exc:
            raise TransientRemoteError(f"Failed to create note: {exc}") from exc

    async def update_note(
        self,
        note_id: str,
        fields: NoteFields,
        updated_at: datetime,
        *,
        user_id: Optional[str] = None,
    ) -> None:
        try:
            async with self._session() as session:
                repo = self._repo(session)
                row = await _owned_row(repo, note_id, user_id)
                await repo.update(
                    row,
                    title=fields.title,
                    content=fields.content,
                    attachments=[a.to_record() for a in fields.attachments],
                    updated_at=updated_at,
                )
        except SQLAlchemyError as exc:
            raise TransientRemoteError(f"Failed to save note: {exc}") from exc

    async def delete_note(self, note_id: str, *, user_id: Optional[str] = None) -> None:
        try:
            async with self._session() as session:
                repo = self._repo(session)
                row = await _owned_row(repo, note_id, user_id)
                await repo.delete(row)
        except SQLAlchemyError as exc:
            raise TransientRemoteError(f"Failed to delete note: {exc}") from exc


async def _owned_row(repo: NoteRepo, note_id: str, user_id: Optional[str]) -> models.Note:
    row = await repo.get(note_id)
    # another user's note is reported exactly like a missing one
    if row is None or (user_id is not None and row.user_id != user_id):
        raise NotFoundError(f"Note {note_id} does not exist")
    return row


__all__ = ["SqlNotesBackend", "to_domain"]
