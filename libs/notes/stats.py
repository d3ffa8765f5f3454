"""Read-only metrics over note content.

The same functions serve the committed record and an in-progress working
copy, so the numbers do not jump when the editor switches state.
"""

from __future__ import annotations

import math
from typing import Iterable

from libs.core.models import CollectionStats, Note, NoteStats

WORDS_PER_MINUTE = 200


def word_count(text: str) -> int:
    return len(text.split())


def char_count(text: str) -> int:
    return len(text)


def reading_time(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Minutes needed to read ``text``; never less than one."""
    return max(1, math.ceil(word_count(text) / words_per_minute))


def note_stats(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> NoteStats:
    words = word_count(text)
    return NoteStats(
        words=words,
        chars=char_count(text),
        reading_minutes=reading_time(text, words_per_minute),
    )


def collection_stats(notes: Iterable[Note]) -> CollectionStats:
    total = 0
    words = 0
    chars = 0
    for note in notes:
        total += 1
        words += word_count(note.content)
        chars += char_count(note.content)
    return CollectionStats(notes=total, words=words, chars=chars)


__all__ = [
    "WORDS_PER_MINUTE",
    "word_count",
    "char_count",
    "reading_time",
    "note_stats",
    "collection_stats",
]
