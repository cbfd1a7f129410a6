"""
Text Chunking
Fixed-size sliding windows over characters
"""

from docuchat.chunking.window_chunker import WindowChunker, chunk, chunk_spans

__all__ = ["WindowChunker", "chunk", "chunk_spans"]
