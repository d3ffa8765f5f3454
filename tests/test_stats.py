from datetime import datetime, timezone

import pytest

from libs.core.models import Note
from libs.notes.stats import char_count, collection_stats, note_stats, reading_time, word_count


def _note(content: str) -> Note:
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Note(id=content or "empty", user_id="u", title="t", content=content, created_at=stamp, updated_at=stamp)


@pytest.mark.parametrize(
    "text, words",
    [("alpha beta  gamma", 3), ("", 0), ("   ", 0), ("line one\nline two", 4), ("tab\tseparated", 2)],
)
def test_word_count(text, words):
    assert word_count(text) == words


def test_char_count_includes_whitespace():
    assert char_count("ab c\n") == 5
    assert char_count("") == 0


@pytest.mark.parametrize("words, minutes", [(0, 1), (1, 1), (200, 1), (201, 2), (450, 3)])
def test_reading_time_rounds_up_with_floor_of_one(words, minutes):
    assert reading_time(" ".join(["word"] * words)) == minutes


def test_reading_time_honours_custom_speed():
    assert reading_time(" ".join(["w"] * 100), words_per_minute=50) == 2


def test_note_stats():
    stats = note_stats("hello neural world")

    assert stats.words == 3
    assert stats.chars == 18
    assert stats.reading_minutes == 1


def test_collection_stats_sum_content_only():
    totals = collection_stats([_note("one two"), _note("three"), _note("")])

    assert totals.notes == 3
    assert totals.words == 3
    assert totals.chars == len("one two") + len("three")


def test_collection_stats_of_nothing():
    totals = collection_stats([])

    assert (totals.notes, totals.words, totals.chars) == (0, 0, 0)


def test_note_stats_uses_the_given_reading_speed():
    text = " ".join(["w"] * 100)

    assert note_stats(text, words_per_minute=50).reading_minutes == reading_time(text, 50) == 2
