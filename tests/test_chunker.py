"""Tests for sentence-aware chunking."""

import pytest

from docsift.indexing.chunker import SmartChunker, chunk_text


def test_smart_chunker_overlap() -> None:
    text = "A" * 2500
    chunker = SmartChunker(chunk_size=1000, overlap=100)

    chunks = chunker.chunk_text(text)

    assert len(chunks) == 3
    assert chunks[1].start_char == chunks[0].end_char - 100
    assert chunks[2].start_char == chunks[1].end_char - 100
    assert [chunk.position for chunk in chunks] == [0, 1, 2]


def test_empty_text_has_no_chunks() -> None:
    assert SmartChunker().chunk_text("") == []
    assert chunk_text("") == []


def test_whitespace_only_text_has_no_chunks() -> None:
    assert chunk_text("   \n\t  ", chunk_size=3, overlap=1) == []


def test_short_text_is_a_single_trimmed_chunk() -> None:
    chunks = SmartChunker().chunk_text("  Hello world.  ")

    assert len(chunks) == 1
    assert chunks[0].text == "Hello world."
    assert chunks[0].start_char == 0
    assert chunks[0].end_char == 16


def test_chunks_snap_to_sentence_ends() -> None:
    text = "Sentence one. Sentence two. Sentence three."

    chunks = SmartChunker(chunk_size=20, overlap=5).chunk_text(text)

    assert chunks[0].text == "Sentence one. Sentence two."
    assert chunks[-1].text == "Sentence three."
    assert all(len(chunk.text) <= 120 for chunk in chunks)


def test_chunk_invariants_hold() -> None:
    text = " ".join(f"Line {i} talks about budgets and plans!" for i in range(200))

    chunks = SmartChunker(chunk_size=300, overlap=50).chunk_text(text)

    starts = [chunk.start_char for chunk in chunks]
    assert starts == sorted(set(starts))
    assert all(chunk.text and chunk.text == chunk.text.strip() for chunk in chunks)
    assert all(chunk.end_char <= len(text) for chunk in chunks)
    assert [chunk.position for chunk in chunks] == list(range(len(chunks)))

    covered_until = 0
    for chunk in chunks:
        assert chunk.start_char <= covered_until
        covered_until = max(covered_until, chunk.end_char)
    assert covered_until == len(text)


def test_chunk_text_function_returns_strings() -> None:
    chunks = chunk_text("word " * 1000, chunk_size=200, overlap=20)

    assert chunks
    assert all(isinstance(chunk, str) for chunk in chunks)


@pytest.mark.parametrize(
    ("chunk_size", "overlap"),
    [(0, 0), (10, -1), (10, 10), (10, 20)],
)
def test_invalid_chunker_arguments(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        SmartChunker(chunk_size=chunk_size, overlap=overlap)
