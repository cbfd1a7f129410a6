"""
Pydantic Schemas for Document endpoints
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID


class DocumentResponse(BaseModel):
    """Schema for document responses"""
    id: UUID
    user_id: UUID
    filename: str
    content_type: Optional[str] = Field(None, description="Declared MIME type")
    category: str = Field(..., description="Detected format: pdf, docx, pptx, text or image")
    size_bytes: Optional[int] = None
    status: str = Field(..., description="processing, ready or failed")
    page_count: Optional[int] = None
    is_ocr: bool = False
    chunk_count: Optional[int] = None
    token_count: Optional[int] = Field(None, description="Tokens across all chunks, as sent for embedding")
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    """Schema for paginated list of documents"""
    data: List[DocumentResponse]
    pagination: Dict = Field(
        description="Pagination info",
        example={
            "total": 42,
            "limit": 20,
            "offset": 0,
            "has_more": True
        }
    )


class OCRResponse(BaseModel):
    text: str
    is_ocr: bool = True
