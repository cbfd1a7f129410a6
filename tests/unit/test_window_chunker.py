"""
Unit tests for the sliding-window chunker

Tests:
- Window arithmetic and coverage of every character
- Determinism
- Window parameter validation
- WindowChunker metadata and whitespace handling
"""

import pytest
from unittest.mock import MagicMock

from docuchat.chunking import WindowChunker, chunk, chunk_spans


@pytest.mark.unit
class TestChunkSpans:

    def test_first_window_starts_at_zero(self):
        assert chunk_spans(1000, 400, 100)[0] == (0, 400)

    def test_windows_overlap_their_predecessor(self):
        spans = chunk_spans(1000, 400, 100)
        # i advances by 300; each window reaches back 100 characters
        assert spans == [(0, 400), (200, 700), (500, 1000), (800, 1000)]

    def test_empty_text_has_no_windows(self):
        assert chunk_spans(0, 400, 100) == []

    def test_short_text_is_one_window(self):
        assert chunk_spans(50, 400, 100) == [(0, 50)]

    @pytest.mark.parametrize("length,size,overlap", [
        (1, 2, 0),
        (1000, 1500, 200),
        (5000, 1500, 200),
        (4321, 100, 99),
        (777, 10, 0),
        (12345, 4000, 200),
    ])
    def test_every_index_is_covered(self, length, size, overlap):
        covered = [False] * length
        for start, end in chunk_spans(length, size, overlap):
            for index in range(start, end):
                covered[index] = True
        assert all(covered)

    @pytest.mark.parametrize("size,overlap", [(100, 100), (100, 150), (100, -1), (0, 0)])
    def test_invalid_window_raises(self, size, overlap):
        with pytest.raises(ValueError):
            chunk_spans(1000, size, overlap)


@pytest.mark.unit
class TestChunk:

    def test_returns_raw_slices(self):
        text = "abcdefghij" * 10
        pieces = chunk(text, chunk_size=30, overlap=10)
        assert pieces[0] == text[0:30]
        assert pieces[1] == text[10:50]

    def test_deterministic(self):
        text = "The quick brown fox jumps over the lazy dog. " * 200
        assert chunk(text, 500, 50) == chunk(text, 500, 50)

    def test_uses_configured_defaults(self):
        text = "x" * 3200
        # CHUNK_SIZE 1500, CHUNK_OVERLAP 200: i = 0, 1300, 2600
        assert len(chunk(text)) == 3

    def test_whitespace_only_windows_are_kept(self):
        pieces = chunk("a" + " " * 98 + "b", chunk_size=20, overlap=0)
        assert len(pieces) == 5
        assert pieces[2].strip() == ""


@pytest.mark.unit
class TestWindowChunker:

    @pytest.fixture
    def chunker(self, mock_tokenizer):
        return WindowChunker(chunk_size=100, chunk_overlap=20, tokenizer=mock_tokenizer)

    def test_chunk_metadata(self, chunker):
        text = "word " * 100
        chunks = chunker.chunk(text)

        assert [c["chunk_index"] for c in chunks] == list(range(len(chunks)))
        assert chunks[0]["metadata"]["start_char"] == 0
        assert chunks[1]["metadata"]["start_char"] == 60
        assert chunks[0]["metadata"]["tokens"] == 20

    def test_content_is_stripped(self, chunker):
        chunks = chunker.chunk("  hello world  ")
        assert chunks[0]["content"] == "hello world"

    def test_drops_whitespace_only_windows(self, mock_tokenizer):
        chunker = WindowChunker(chunk_size=20, chunk_overlap=0, tokenizer=mock_tokenizer)
        chunks = chunker.chunk("a" + " " * 98 + "b")

        assert [c["content"] for c in chunks] == ["a", "b"]
        assert [c["chunk_index"] for c in chunks] == [0, 1]

    def test_empty_text(self, chunker):
        assert chunker.chunk("") == []
        assert chunker.chunk("   \n ") == []

    def test_invalid_window_rejected_at_construction(self):
        with pytest.raises(ValueError):
            WindowChunker(chunk_size=100, chunk_overlap=100, tokenizer=MagicMock())

    def test_count_tokens_uses_tokenizer(self, chunker, mock_tokenizer):
        assert chunker.count_tokens("one two three") == 3
        mock_tokenizer.encode.assert_called_with("one two three")
