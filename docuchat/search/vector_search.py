"""
Vector Search Service
Chunk retrieval with pgvector cosine similarity, plus sequential page-order
retrieval for operations that need whole-document coverage.

Two named context policies:
- SIMILARITY: top-K chunks most similar to the question (chat)
- SEQUENTIAL: the first N chunks in page order (quick answers, summaries)
"""

import enum
import logging
from typing import List, Dict, Any, Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_
from docuchat.config import settings
from docuchat.models.chunk import DocumentChunk
from uuid import UUID

logger = logging.getLogger(__name__)


class ContextPolicy(str, enum.Enum):
    SIMILARITY = "similarity"
    SEQUENTIAL = "sequential"


class VectorSearchService:
    """Chunk lookup scoped to one owning user"""

    def __init__(self, db: Session):
        self.db = db

    def match_chunks(
        self,
        query_embedding: List[float],
        user_id: UUID,
        threshold: float = None,
        count: int = None,
        document_id: Optional[UUID] = None,
    ) -> List[Dict[str, Any]]:
        """
        Top chunks by cosine similarity above a minimum threshold

        Args:
            query_embedding: Question embedding
            user_id: Owning user (always applied)
            threshold: Minimum similarity (default settings.RETRIEVAL_THRESHOLD)
            count: Maximum chunks returned (default settings.RETRIEVAL_TOP_K)
            document_id: Restrict to one document

        Returns:
            Chunks ordered by descending similarity; empty when none qualify
        """
        threshold = settings.RETRIEVAL_THRESHOLD if threshold is None else threshold
        count = count or settings.RETRIEVAL_TOP_K

        distance = DocumentChunk.embedding.cosine_distance(query_embedding)

        filters = [
            DocumentChunk.user_id == user_id,
            # similarity = 1 - distance
            distance <= 1 - threshold,
        ]
        if document_id:
            filters.append(DocumentChunk.document_id == document_id)

        results = self.db.query(
            DocumentChunk.id,
            DocumentChunk.document_id,
            DocumentChunk.content,
            DocumentChunk.chunk_index,
            DocumentChunk.page_number,
            distance.label('distance')
        ).filter(
            and_(*filters)
        ).order_by('distance').limit(count).all()

        chunks = [
            {
                'chunk_id': str(result.id),
                'document_id': str(result.document_id),
                'content': result.content,
                'chunk_index': result.chunk_index,
                'page_number': result.page_number,
                'similarity': 1 - result.distance,
            }
            for result in results
        ]

        if not chunks:
            logger.info(f"No chunks above similarity {threshold} for user {user_id}")
        return chunks

    def first_chunks(
        self,
        document_id: UUID,
        user_id: UUID,
        limit: int = None,
    ) -> List[Dict[str, Any]]:
        """
        Leading chunks of a document in page order

        Args:
            document_id: Document to read
            user_id: Owning user
            limit: Number of chunks (default settings.SEQUENTIAL_CONTEXT_CHUNKS); 0 for all
        """
        limit = settings.SEQUENTIAL_CONTEXT_CHUNKS if limit is None else limit

        query = self.db.query(DocumentChunk).filter(
            DocumentChunk.document_id == document_id,
            DocumentChunk.user_id == user_id,
        ).order_by(DocumentChunk.page_number, DocumentChunk.chunk_index)

        if limit:
            query = query.limit(limit)

        return [
            {
                'chunk_id': str(chunk.id),
                'document_id': str(chunk.document_id),
                'content': chunk.content,
                'chunk_index': chunk.chunk_index,
                'page_number': chunk.page_number,
            }
            for chunk in query.all()
        ]
