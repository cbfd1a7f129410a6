"""
Embedding Generation
OpenAI embeddings for chunk storage and question lookup
"""

from docuchat.embeddings.openai_embedder import OpenAIEmbedder

__all__ = ["OpenAIEmbedder"]
