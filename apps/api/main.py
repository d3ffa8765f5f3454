from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel, Field

from libs.core.exceptions import (
    DomainError,
    InvalidStateError,
    NotFoundError,
    TransientRemoteError,
    UnauthenticatedError,
    ValidationError,
)
from libs.core.models import Attachment, FileUpload, Note
from libs.core.settings import get_settings
from libs.db import SqlNotesBackend
from libs.logging import setup_logging
from libs.notes.stats import note_stats
from libs.remote import AuthSession, NotesBackend
from libs.storage import LocalBlobStorage
from libs.usecases import NotesWorkspace


# ---------------------------------------------------------------------------
# Dependency factories


def get_backend() -> NotesBackend:
    return SqlNotesBackend()


def get_blob_storage() -> LocalBlobStorage:
    return LocalBlobStorage.from_settings(get_settings())


async def current_user(
    user_id: str | None = Header(None, alias="X-User-Id"),
    email: str | None = Header(None, alias="X-User-Email"),
) -> AuthSession:
    """Session for the user the upstream auth proxy vouched for."""
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id")
    return AuthSession(user_id, email)


async def workspace(
    backend: NotesBackend = Depends(get_backend),
    storage: LocalBlobStorage = Depends(get_blob_storage),
    auth: AuthSession = Depends(current_user),
) -> NotesWorkspace:
    ws = NotesWorkspace(backend, storage, auth, settings=get_settings())
    await ws.store.load()
    return ws


# ---------------------------------------------------------------------------
# Pydantic schemas


class NoteUpdateRequest(BaseModel):
    title: str = ""
    content: str = ""
    # None keeps the current attachments
    attachments: Optional[List[Attachment]] = None


class NoteStatsOut(BaseModel):
    words: int
    chars: int
    reading_minutes: int


class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: str
    updated_at: str
    stats: NoteStatsOut


def _note_out(note: Note) -> NoteOut:
    stats = note_stats(note.content, get_settings().words_per_minute)
    return NoteOut(
        id=note.id,
        title=note.title,
        content=note.content,
        attachments=[a.to_record() for a in note.attachments],
        created_at=note.created_at.isoformat(),
        updated_at=note.updated_at.isoformat(),
        stats=NoteStatsOut(**stats.model_dump()),
    )


# ---------------------------------------------------------------------------
# FastAPI application


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    yield


app = FastAPI(title="NeoNote API", lifespan=lifespan)

_ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TransientRemoteError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


@app.exception_handler(DomainError)
async def domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
    code = next(
        (code for kind, code in _ERROR_STATUS if isinstance(exc, kind)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=code, content={"detail": str(exc)})


# Routes ---------------------------------------------------------------------


@app.get("/notes")
async def list_notes(q: str = "", ws: NotesWorkspace = Depends(workspace)) -> Dict[str, Any]:
    notes = ws.search(q)
    dashboard = ws.dashboard()
    return {
        "user": dashboard.user,
        "totals": dashboard.totals.model_dump(),
        "notes": [_note_out(n).model_dump() for n in notes],
    }


@app.post("/notes", status_code=status.HTTP_201_CREATED)
async def create_note(ws: NotesWorkspace = Depends(workspace)) -> NoteOut:
    note = await ws.store.create()
    return _note_out(note)


@app.get("/notes/{note_id}")
async def get_note(note_id: str, ws: NotesWorkspace = Depends(workspace)) -> NoteOut:
    return _note_out(ws.open_note(note_id))


@app.put("/notes/{note_id}")
async def update_note(
    note_id: str, req: NoteUpdateRequest, ws: NotesWorkspace = Depends(workspace)
) -> NoteOut:
    ws.open_note(note_id)
    ws.edit()
    ws.editor.set_title(req.title)
    ws.editor.set_content(req.content)
    if req.attachments is not None:
        ws.editor.set_attachments(req.attachments)
    note = await ws.editor.commit()
    return _note_out(note)


@app.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str, ws: NotesWorkspace = Depends(workspace)) -> Response:
    await ws.store.remove(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/notes/{note_id}/attachments")
async def upload_attachments(
    note_id: str,
    files: List[UploadFile] = File(...),
    ws: NotesWorkspace = Depends(workspace),
) -> Dict[str, Any]:
    ws.open_note(note_id)
    ws.edit()
    uploads = [
        FileUpload(name=f.filename or "", data=await f.read(), mime_type=f.content_type)
        for f in files
    ]
    report = await ws.uploader.upload_to(ws.editor, uploads)
    note = ws.store.get(note_id)
    if report.succeeded:
        note = await ws.editor.commit()
    return {
        "note": _note_out(note).model_dump() if note else None,
        "uploaded": [a.to_record() for a in report.succeeded],
        "failed": [{"name": f.name, "reason": f.reason} for f in report.failed],
    }


@app.delete("/notes/{note_id}/attachments/{path:path}")
async def remove_attachment(
    note_id: str, path: str, ws: NotesWorkspace = Depends(workspace)
) -> NoteOut:
    note = ws.open_note(note_id)
    attachment = next((a for a in note.attachments if a.path == path), None)
    if attachment is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    ws.edit()
    await ws.uploader.remove_from(ws.editor, attachment)
    return _note_out(await ws.editor.commit())


@app.get("/stats")
async def stats(ws: NotesWorkspace = Depends(workspace)) -> Dict[str, int]:
    return ws.dashboard().totals.model_dump()


@app.get("/files/{path:path}")
def get_file(path: str, storage: LocalBlobStorage = Depends(get_blob_storage)) -> FileResponse:
    target = storage.resolve(path)
    if not target.is_file():
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(target)


__all__ = ["app"]
