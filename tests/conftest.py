import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
from fastapi.testclient import TestClient

# Ensure project root on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from apps.api.main import app, get_backend, get_blob_storage
from libs.core.exceptions import NotFoundError, TransientRemoteError
from libs.core.models import Note, NoteFields
from libs.core.settings import Settings
from libs.notes import NoteRecordStore
from libs.remote import AuthSession, BlobStorage, NotesBackend
from libs.storage import LocalBlobStorage

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeNotesBackend(NotesBackend):
    """In-memory remote store with scriptable failures and delays."""

    def __init__(self) -> None:
        self.records: Dict[str, Note] = {}
        self.calls: List[str] = []
        # operation name -> error raised on the next call
        self.failures: Dict[str, Exception] = {}
        # note title -> event the update waits for before acknowledging
        self.update_gates: Dict[str, asyncio.Event] = {}
        self._seq = 0

    def seed(self, user_id: str, title: str, content: str = "", minutes: int = 0) -> Note:
        self._seq += 1
        stamp = BASE_TIME + timedelta(minutes=minutes)
        note = Note(
            id=f"note-{self._seq}",
            user_id=user_id,
            title=title,
            content=content,
            created_at=stamp,
            updated_at=stamp,
        )
        self.records[note.id] = note
        return note

    def _check(self, op: str) -> None:
        self.calls.append(op)
        error = self.failures.pop(op, None)
        if error is not None:
            raise error

    async def list_notes(self, user_id: str) -> List[Note]:
        self._check("list")
        notes = [n for n in self.records.values() if n.user_id == user_id]
        return sorted(notes, key=lambda n: n.updated_at, reverse=True)

    async def insert_note(self, user_id: str, fields: NoteFields) -> Note:
        self._check("insert")
        self._seq += 1
        stamp = BASE_TIME + timedelta(days=1, minutes=self._seq)
        note = Note(
            id=f"note-{self._seq}",
            user_id=user_id,
            title=fields.title,
            content=fields.content,
            attachments=fields.attachments,
            created_at=stamp,
            updated_at=stamp,
        )
        self.records[note.id] = note
        return note

    def _owned(self, note_id: str, user_id: Optional[str]) -> Note:
        note = self.records.get(note_id)
        if note is None or (user_id is not None and note.user_id != user_id):
            raise NotFoundError(f"Note {note_id} does not exist")
        return note

    async def update_note(
        self,
        note_id: str,
        fields: NoteFields,
        updated_at: datetime,
        *,
        user_id: Optional[str] = None,
    ) -> None:
        self._check("update")
        gate = self.update_gates.get(fields.title)
        if gate is not None:
            await gate.wait()
        self._owned(note_id, user_id)
        self.records[note_id] = self.records[note_id].with_fields(fields, updated_at)

    async def delete_note(self, note_id: str, *, user_id: Optional[str] = None) -> None:
        self._check("delete")
        self._owned(note_id, user_id)
        del self.records[note_id]


class FakeBlobStorage(BlobStorage):
    """In-memory blob storage; behaviour keyed by the uploaded bytes."""

    def __init__(self, base_url: str = "https://cdn.test/note-attachments") -> None:
        self.base_url = base_url
        self.objects: Dict[str, bytes] = {}
        self.reject: Set[bytes] = set()
        # bytes whose upload blows up with a non-domain error
        self.crash: Set[bytes] = set()
        self.delays: Dict[bytes, float] = {}
        self.failing_removals: Set[str] = set()
        self.without_url: Set[str] = set()
        self.removed: List[str] = []

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        await asyncio.sleep(self.delays.get(data, 0))
        if data in self.reject:
            raise TransientRemoteError("storage rejected the upload")
        if data in self.crash:
            raise RuntimeError("connection pool exhausted")
        self.objects[path] = data

    def get_public_url(self, path: str) -> str:
        if not self.base_url or path in self.without_url:
            return ""
        return f"{self.base_url}/{path}"

    async def remove(self, path: str) -> None:
        if path in self.failing_removals:
            raise TransientRemoteError("storage unavailable")
        if self.objects.pop(path, None) is None:
            raise NotFoundError(f"Attachment {path} does not exist")
        self.removed.append(path)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(blob_dir=tmp_path / "blobs", public_url="http://testserver/files")


@pytest.fixture()
def backend() -> FakeNotesBackend:
    return FakeNotesBackend()


@pytest.fixture()
def blobs() -> FakeBlobStorage:
    return FakeBlobStorage()


@pytest.fixture()
def auth() -> AuthSession:
    return AuthSession("user-1", "neo@example.com")


@pytest.fixture()
def store(backend, auth, settings) -> NoteRecordStore:
    return NoteRecordStore(backend, auth, settings)


@pytest.fixture()
def loaded_store(store, backend, auth) -> NoteRecordStore:
    """Store holding two notes: "Alpha" (newer) and "Beta"."""
    backend.seed(auth.current_user_id, "Beta", "second body", minutes=1)
    backend.seed(auth.current_user_id, "Alpha", "first body", minutes=2)
    asyncio.run(store.load())
    backend.calls.clear()
    return store


@pytest.fixture()
def client(tmp_path, backend):
    """FastAPI test client with remote collaborators overridden."""

    storage = LocalBlobStorage(tmp_path / "blobs", "http://testserver/files")
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_blob_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


