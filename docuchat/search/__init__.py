"""
Chunk retrieval
"""

from docuchat.search.vector_search import VectorSearchService, ContextPolicy

__all__ = ["VectorSearchService", "ContextPolicy"]
