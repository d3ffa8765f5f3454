from __future__ import annotations

from typing import Sequence, Tuple

from libs.core.models import Note
from libs.notes.record_store import CollectionChange, NoteRecordStore


def filter_notes(notes: Sequence[Note], query: str) -> Tuple[Note, ...]:
    """Notes whose title or content contains ``query``, case-insensitively.

    An empty query returns every note. The input order (newest first) is
    kept; matches are never ranked.
    """
    if not query:
        return tuple(notes)
    needle = query.lower()
    return tuple(
        note
        for note in notes
        if needle in note.title.lower() or needle in note.content.lower()
    )


class SearchIndex:
    """Filtered view over a store, re-derived on every query or collection change.

    The match set is recomputed from scratch each time; there is no
    incremental index to maintain at personal-collection sizes.
    """

    def __init__(self, store: NoteRecordStore, query: str = "") -> None:
        self.store = store
        self.query = query
        self._view: Tuple[Note, ...] = filter_notes(store.notes, query)
        self._unsubscribe = store.subscribe(self._on_change)

    @property
    def view(self) -> Tuple[Note, ...]:
        return self._view

    def set_query(self, query: str) -> Tuple[Note, ...]:
        self.query = query
        self._view = filter_notes(self.store.notes, query)
        return self._view

    def close(self) -> None:
        self._unsubscribe()

    def _on_change(self, change: CollectionChange) -> None:
        self._view = filter_notes(change.notes, self.query)


__all__ = ["filter_notes", "SearchIndex"]
