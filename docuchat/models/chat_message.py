"""
ChatMessage Model - Questions and answers about a document
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid

from docuchat.database import Base


class ChatMessage(Base):
    """
    Append-only chat message

    role is "user" for questions and "ai" for answers. Token counts are set on
    answers only.
    """

    __tablename__ = "chat_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)
    input_tokens = Column(Integer)
    output_tokens = Column(Integer)

    # Set in Python so messages written in one transaction keep their order
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    document = relationship("Document", back_populates="messages")

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, role={self.role}, document_id={self.document_id})>"
