"""Note synchronization and editing engine."""

from .record_store import CollectionChange, NoteRecordStore
from .editor import EditorBuffer, EditorState, EditTicket
from .uploader import AttachmentUploader, describe_size, file_kind
from .search_index import SearchIndex, filter_notes
from . import stats

__all__ = [
    "CollectionChange",
    "NoteRecordStore",
    "EditorBuffer",
    "EditorState",
    "EditTicket",
    "AttachmentUploader",
    "describe_size",
    "file_kind",
    "SearchIndex",
    "filter_notes",
    "stats",
]
