"""
Sliding-window chunker

Splits text into fixed-size character windows that overlap their predecessor.
Window k starts at max(0, i - overlap) and ends at i + chunk_size, where
i = k * (chunk_size - overlap). There is no sentence or paragraph awareness,
so windows may split words.
"""

from typing import Any, Dict, List, Tuple
import logging

import tiktoken

from docuchat.config import settings

logger = logging.getLogger(__name__)


def _check_window(chunk_size: int, overlap: int) -> None:
    # With chunk_size <= overlap the window never advances
    if overlap < 0:
        raise ValueError(f"overlap must be >= 0, got {overlap}")
    if chunk_size <= overlap:
        raise ValueError(f"chunk_size ({chunk_size}) must be greater than overlap ({overlap})")


def chunk_spans(length: int, chunk_size: int, overlap: int) -> List[Tuple[int, int]]:
    """Character ranges [start, end) of each window over a text of this length"""
    _check_window(chunk_size, overlap)

    spans = []
    i = 0
    while i < length:
        spans.append((max(0, i - overlap), min(length, i + chunk_size)))
        i += chunk_size - overlap
    return spans


def chunk(text: str, chunk_size: int = None, overlap: int = None) -> List[str]:
    """
    Split text into overlapping windows

    Args:
        text: Input text
        chunk_size: Window advance plus overlap (default settings.CHUNK_SIZE)
        overlap: Characters shared with the previous window (default settings.CHUNK_OVERLAP)

    Returns:
        Window texts in order; empty for empty input

    Raises:
        ValueError: unless chunk_size > overlap >= 0
    """
    chunk_size = settings.CHUNK_SIZE if chunk_size is None else chunk_size
    overlap = settings.CHUNK_OVERLAP if overlap is None else overlap
    return [text[start:end] for start, end in chunk_spans(len(text), chunk_size, overlap)]


class WindowChunker:
    """Sliding-window chunking with per-chunk offsets and token counts"""

    def __init__(self, chunk_size: int = None, chunk_overlap: int = None, tokenizer=None):
        self.chunk_size = settings.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = settings.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        _check_window(self.chunk_size, self.chunk_overlap)
        self._tokenizer = tokenizer

    @property
    def tokenizer(self):
        if self._tokenizer is None:
            self._tokenizer = tiktoken.get_encoding("cl100k_base")
        return self._tokenizer

    def count_tokens(self, text: str) -> int:
        return len(self.tokenizer.encode(text))

    def chunk(self, text: str) -> List[Dict[str, Any]]:
        """
        Chunk text, dropping whitespace-only windows

        Returns:
            List of chunks with:
            - content: The window text, stripped
            - chunk_index: Position among the kept chunks
            - metadata: start_char, end_char, tokens
        """
        if not text or not text.strip():
            logger.warning("Empty text provided to chunker")
            return []

        result = []
        for start, end in chunk_spans(len(text), self.chunk_size, self.chunk_overlap):
            content = text[start:end].strip()
            if not content:
                continue
            result.append({
                "content": content,
                "chunk_index": len(result),
                "metadata": {
                    "start_char": start,
                    "end_char": end,
                    "tokens": self.count_tokens(content),
                },
            })

        logger.info(
            f"Chunking complete: {len(result)} chunks "
            f"(size={self.chunk_size}, overlap={self.chunk_overlap})"
        )
        return result
