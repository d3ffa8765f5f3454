import asyncio

import pytest

from libs.core.exceptions import NotFoundError, TransientRemoteError
from libs.core.models import FileUpload
from libs.notes import EditorState
from libs.usecases import NotesWorkspace


@pytest.fixture()
def ws(backend, blobs, auth, settings) -> NotesWorkspace:
    backend.seed(auth.current_user_id, "Beta", "second body", minutes=1)
    backend.seed(auth.current_user_id, "Alpha", "first body here", minutes=2)
    workspace = NotesWorkspace(backend, blobs, auth, settings=settings)
    assert asyncio.run(workspace.start()) is None
    return workspace


def test_start_failure_reports_reason(backend, blobs, auth, settings):
    backend.failures["list"] = TransientRemoteError("connection refused")
    workspace = NotesWorkspace(backend, blobs, auth, settings=settings)

    notice = asyncio.run(workspace.start())

    assert notice.is_error
    assert notice.title == "[DATABASE_ERROR]"
    assert "connection refused" in notice.description


def test_create_note_opens_it_for_editing(ws):
    notice = asyncio.run(ws.create_note())

    assert not notice.is_error
    assert notice.title == "[NEURAL_ENTRY_CREATED]"
    assert ws.editor.state is EditorState.EDITING
    assert ws.editor.working_copy.title == "New Neural Entry"
    assert ws.dashboard().notes[0].id == ws.editor.note_id


def test_create_failure_keeps_collection(ws, backend):
    backend.failures["insert"] = TransientRemoteError("quota exceeded")

    notice = asyncio.run(ws.create_note())

    assert notice.is_error
    assert "quota exceeded" in notice.description
    assert len(ws.store) == 2
    assert ws.editor.state is EditorState.CLOSED


def test_save_success_and_failure_notices(ws, backend):
    note = ws.store.notes[0]
    ws.open_note(note.id)
    ws.edit()
    ws.editor.set_content("fresh words")
    backend.failures["update"] = TransientRemoteError("timeout")

    failed = asyncio.run(ws.save())
    assert failed.is_error
    assert failed.description == "Failed to synchronize neural data: timeout"
    assert ws.editor.state is EditorState.EDITING

    saved = asyncio.run(ws.save())
    assert saved.title == "[NEURAL_DATA_SAVED]"
    assert ws.store.get(note.id).content == "fresh words"


def test_delete_open_note_closes_editor(ws):
    note = ws.store.notes[0]
    ws.open_note(note.id)

    notice = asyncio.run(ws.delete_note(note.id))

    assert notice.title == "[NEURAL_ENTRY_DELETED]"
    assert ws.editor.state is EditorState.CLOSED
    assert ws.store.get(note.id) is None


def test_delete_failure_notice(ws, backend):
    backend.failures["delete"] = TransientRemoteError("locked")

    notice = asyncio.run(ws.delete_note(ws.store.notes[0].id))

    assert notice.is_error
    assert len(ws.store) == 2


def test_open_unknown_note_raises(ws):
    with pytest.raises(NotFoundError):
        ws.open_note("missing")


def test_partial_upload_notice(ws, blobs):
    ws.open_note(ws.store.notes[0].id)
    ws.edit()
    blobs.reject.add(b"bad")

    notice = asyncio.run(ws.upload([FileUpload("a.txt", b"bad"), FileUpload("b.txt", b"good")]))

    assert notice.is_error
    assert notice.title == "[UPLOAD_PARTIAL]"
    assert notice.description.startswith("1 file(s) uploaded, 1 failed: a.txt:")
    assert [a.name for a in ws.editor.working_copy.attachments] == ["b.txt"]


def test_upload_ok_and_remove_notices(ws):
    ws.open_note(ws.store.notes[0].id)
    ws.edit()

    uploaded = asyncio.run(ws.upload([FileUpload("a.txt", b"a"), FileUpload("b.txt", b"b")]))
    assert uploaded.description == "2 file(s) uploaded successfully"

    first = ws.editor.working_copy.attachments[0]
    removed = asyncio.run(ws.remove_attachment(first))
    assert removed.title == "[FILE_REMOVED]"
    assert len(ws.editor.working_copy.attachments) == 1


def test_upload_outside_edit_mode_is_an_error_notice(ws):
    ws.open_note(ws.store.notes[0].id)

    notice = asyncio.run(ws.upload([FileUpload("a.txt", b"a")]))

    assert notice.is_error
    assert notice.title == "[UPLOAD_ERROR]"


def test_dashboard_reports_totals_and_editor_stats(ws):
    board = ws.dashboard()
    assert board.user == "neo"
    assert board.totals.notes == 2
    assert board.totals.words == 5
    assert board.editor_stats is None

    ws.open_note(ws.store.notes[0].id)
    ws.edit()
    ws.editor.set_content("one two three four")
    board = ws.dashboard()
    assert board.editor_state == "editing"
    assert board.editor_stats.words == 4
    # totals describe the committed collection only
    assert board.totals.words == 5


def test_search_narrows_dashboard(ws):
    ws.search("beta")

    assert [n.title for n in ws.dashboard().notes] == ["Beta"]
    assert ws.dashboard().query == "beta"


def test_sign_out_clears_everything(ws):
    ws.open_note(ws.store.notes[0].id)

    notice = ws.sign_out()

    assert notice.title == "[SESSION_TERMINATED]"
    assert ws.store.notes == ()
    assert ws.editor.state is EditorState.CLOSED
    assert not ws.auth.is_authenticated
    assert ws.dashboard().user == "neural_user"


def test_each_action_returns_its_own_notice(ws):
    ws.open_note(ws.store.notes[0].id)
    ws.edit()
    saved = asyncio.run(ws.save())
    closed = ws.sign_out()

    assert saved.title == "[NEURAL_DATA_SAVED]"
    assert closed.title == "[SESSION_TERMINATED]"
    assert saved is not closed
