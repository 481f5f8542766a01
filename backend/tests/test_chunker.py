"""Tests for chunker."""

import pytest

from local_rag.ingest.chunker import chunk_text, split_graphemes


def test_sliding_window_offsets() -> None:
    text = "This is a test. This is only a test. We are testing text chunking."
    chunks = chunk_text(text, chunk_size=20, overlap=5)
    assert chunks, "Should produce chunks"
    assert chunks[0].index == 0
    assert all(len(split_graphemes(c.text)) <= 20 for c in chunks)
    starts = [c.start for c in chunks]
    assert starts == list(range(0, 15 * len(chunks), 15))
    assert chunks[-1].end == len(text)


def test_empty_input_yields_nothing() -> None:
    assert chunk_text("", chunk_size=10, overlap=2) == []


def test_graphemes_are_never_split() -> None:
    family = "\U0001F468\u200d\U0001F469\u200d\U0001F467"
    accented = "e\u0301"
    text = f"ab{family}{accented}cd"
    chunks = chunk_text(text, chunk_size=3, overlap=0)
    assert [c.text for c in chunks] == [f"ab{family}", f"{accented}cd"]
    assert [(c.start, c.end) for c in chunks] == [(0, 3), (3, 6)]


def test_whitespace_windows_dropped_indices_stay_contiguous() -> None:
    text = "abc" + " " * 10 + "def"
    chunks = chunk_text(text, chunk_size=3, overlap=0)
    assert [c.text for c in chunks] == ["abc", " de", "f"]
    assert [c.index for c in chunks] == [0, 1, 2]
    assert [c.start for c in chunks] == [0, 12, 15]


def test_spans_cover_every_non_whitespace_grapheme() -> None:
    text = "Lorem ipsum dolor sit amet,\n\n   consectetur   adipiscing elit. " * 7
    graphemes = split_graphemes(text)
    for chunk_size, overlap in [(7, 0), (10, 3), (25, 24), (64, 8)]:
        chunks = chunk_text(text, chunk_size=chunk_size, overlap=overlap)
        covered = set()
        for chunk in chunks:
            covered.update(range(chunk.start, chunk.end))
        missing = [i for i in range(len(graphemes)) if i not in covered]
        assert all(graphemes[i].isspace() for i in missing)
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert all(a.start < b.start for a, b in zip(chunks, chunks[1:]))


def test_overlap_not_smaller_than_size_still_terminates() -> None:
    chunks = chunk_text("abcdefgh", chunk_size=5, overlap=5)
    assert [c.start for c in chunks] == [0, 1, 2, 3]
    assert chunks[-1].end == 8
    assert len(chunk_text("abcdefgh", chunk_size=3, overlap=10)) == 6


@pytest.mark.parametrize("chunk_size,overlap", [(0, 0), (-1, 0), (10, -1)])
def test_invalid_parameters_rejected(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        chunk_text("some text", chunk_size=chunk_size, overlap=overlap)
