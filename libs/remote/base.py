from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from libs.core.exceptions import UnauthenticatedError
from libs.core.models import Note, NoteFields


class NotesBackend(ABC):
    """Remote persistence service holding the users' note records.

    Implementations raise :class:`~libs.core.exceptions.TransientRemoteError`
    on service failures and :class:`~libs.core.exceptions.NotFoundError` when
    the targeted record no longer exists.
    """

    @abstractmethod
    async def list_notes(self, user_id: str) -> List[Note]:
        """Return every note owned by ``user_id``, newest ``updated_at`` first."""

    @abstractmethod
    async def insert_note(self, user_id: str, fields: NoteFields) -> Note:
        """Persist a new note and return it with its server-assigned id."""

    @abstractmethod
    async def update_note(
        self,
        note_id: str,
        fields: NoteFields,
        updated_at: datetime,
        *,
        user_id: Optional[str] = None,
    ) -> None:
        """Overwrite the editable fields of a note.

        With ``user_id`` set, a note owned by someone else counts as missing.
        """

    @abstractmethod
    async def delete_note(self, note_id: str, *, user_id: Optional[str] = None) -> None:
        """Delete a note; ``user_id`` scopes it like :meth:`update_note`."""


class BlobStorage(ABC):
    """Storage for attachment bytes, addressed by storage path."""

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``path``."""

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        """Return the public URL of ``path`` or an empty string if unknown."""

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete the object stored under ``path``."""


class AuthSession:
    """Credential holder for one client session."""

    def __init__(self, user_id: Optional[str] = None, email: Optional[str] = None) -> None:
        self._user_id = user_id
        self.email = email

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def sign_in(self, user_id: str, email: Optional[str] = None) -> None:
        self._user_id = user_id
        self.email = email

    def sign_out(self) -> None:
        self._user_id = None
        self.email = None

    def require_user(self) -> str:
        """Return the signed-in user id or raise ``UnauthenticatedError``."""
        if self._user_id is None:
            raise UnauthenticatedError("Sign in to access your notes")
        return self._user_id


def display_name(email: Optional[str]) -> str:
    """Short handle shown in the dashboard: the local part of the email."""
    if email:
        local = email.split("@", 1)[0]
        if local:
            return local
    return "neural_user"


__all__ = ["NotesBackend", "BlobStorage", "AuthSession", "display_name"]
