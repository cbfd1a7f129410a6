"""
Document Model - Uploaded files and their ingestion status
"""

from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from docuchat.database import Base


class DocumentStatus:
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class Document(Base):
    """
    Document model - one uploaded file owned by one user

    Attributes:
        filename: Original filename
        content_type: Declared MIME type
        category: Detected format (pdf, docx, pptx, text, image)
        storage_path: Location of the original bytes in object storage
        status: processing → ready, or failed
        page_count: Pages (PDF), slides (PPTX) or 1
        is_ocr: Whether the text came from OCR
        chunk_count: Number of persisted chunks
        extracted_text: Full extracted text (source for summaries)
        error_message: Why ingestion failed, if it did

    Cascade Delete:
        Deleting a document deletes its chunks, chat messages and summaries
    """

    __tablename__ = "documents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    filename = Column(String(512), nullable=False)
    content_type = Column(String(255))
    category = Column(String(20), nullable=False)
    size_bytes = Column(Integer)
    storage_path = Column(String(1024))

    status = Column(String(20), default=DocumentStatus.PROCESSING, nullable=False, index=True)
    page_count = Column(Integer, default=0)
    is_ocr = Column(Boolean, default=False)
    chunk_count = Column(Integer, default=0)
    token_count = Column(Integer, default=0)
    extracted_text = Column(Text)
    error_message = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    processed_at = Column(DateTime(timezone=True))

    user = relationship("User", back_populates="documents")
    chunks = relationship(
        "DocumentChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentChunk.chunk_index",
    )
    messages = relationship(
        "ChatMessage",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ChatMessage.created_at",
    )
    summaries = relationship("Summary", back_populates="document", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Document(id={self.id}, filename={self.filename}, status={self.status})>"
