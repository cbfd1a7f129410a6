"""
Pydantic Schemas for document chat and quick queries
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID


class ChatRequest(BaseModel):
    """Request schema for a question about a document"""
    question: str = Field(..., min_length=1, max_length=4000, description="Question about the document")


class Source(BaseModel):
    """A chunk used as context for the answer"""
    chunk_id: str
    chunk_index: int
    page_number: int
    content: str
    similarity: Optional[float] = Field(None, description="Cosine similarity (similarity policy only)")


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    provider: str = ""
    charged_with: str = Field(..., description="credits or counter")


class ChatResponse(BaseModel):
    """Answer with the context it was grounded on"""
    answer: str
    context_policy: str
    sources: List[Source]
    usage: Usage


class ChatMessageResponse(BaseModel):
    id: UUID
    role: str
    content: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChatHistoryResponse(BaseModel):
    document_id: UUID
    messages: List[ChatMessageResponse]
