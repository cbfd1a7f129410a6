"""
Summary Model - Generated document summaries
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from docuchat.database import Base


class Summary(Base):
    __tablename__ = "summaries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_id = Column(UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    summary_type = Column(String(20), nullable=False)
    domain_focus = Column(String(100))
    content = Column(Text, nullable=False)
    credits_used = Column(Integer, default=0)
    provider = Column(String(50))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="summaries")

    def __repr__(self):
        return f"<Summary(id={self.id}, type={self.summary_type}, document_id={self.document_id})>"
