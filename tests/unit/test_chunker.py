"""Tests for fixed-size code-point chunking."""
import math

import pytest

from ruborag.errors import InvalidArgument
from ruborag.rag.chunker import TextChunker, chunk


@pytest.mark.parametrize(
    "text,size",
    [
        ("abcdefghij", 3),
        ("abcdefghij", 10),
        ("abcdefghij", 11),
        ("a", 1),
        ("héllo wörld, ünïcode ✓ 🦀🦀🦀", 4),
    ],
)
def test_chunks_cover_text_exactly(text, size):
    segments = chunk(text, size)

    assert "".join(segments) == text
    assert all(0 < len(s) <= size for s in segments)
    assert len(segments) == math.ceil(len(text) / size)


def test_final_segment_may_be_shorter():
    assert chunk("abcdefg", 3) == ["abc", "def", "g"]


def test_empty_text_gives_no_chunks():
    assert chunk("", 5) == []


@pytest.mark.parametrize("size", [0, -1])
def test_non_positive_size_rejected(size):
    with pytest.raises(InvalidArgument):
        chunk("text", size)


def test_multibyte_characters_are_never_split():
    text = "🦀" * 5
    segments = chunk(text, 2)

    assert segments == ["🦀🦀", "🦀🦀", "🦀"]
    for segment in segments:
        segment.encode("utf-8").decode("utf-8")


def test_text_chunker_assigns_dense_indices_and_offsets():
    chunker = TextChunker(chunk_size=4)
    chunks = chunker.chunk_text("abcdefghij")

    assert [c.chunk_index for c in chunks] == [0, 1, 2]
    assert [(c.char_start, c.char_end) for c in chunks] == [(0, 4), (4, 8), (8, 10)]
    assert [c.content for c in chunks] == ["abcd", "efgh", "ij"]


def test_text_chunker_rejects_zero_size():
    with pytest.raises(InvalidArgument):
        TextChunker(chunk_size=0)


def test_single_chunk_ignores_length():
    text = "x" * 5000
    chunks = TextChunker.single_chunk(text)

    assert len(chunks) == 1
    assert chunks[0].chunk_index == 0
    assert chunks[0].content == text

