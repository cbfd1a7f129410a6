"""
PaymentTransaction Model - Processed payment webhook events
"""

from sqlalchemy import Column, String, Integer, ForeignKey, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from docuchat.database import Base


class PaymentTransaction(Base):
    """
    One processed payment event

    reference is the processor's transaction or session id and is unique, so a
    redelivered webhook is recognised and not applied twice.
    """

    __tablename__ = "payment_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    provider = Column(String(20), nullable=False)
    reference = Column(String(255), unique=True, nullable=False, index=True)
    event = Column(String(100), nullable=False)
    amount = Column(Integer)
    currency = Column(String(10))
    plan = Column(String(20))
    credits = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<PaymentTransaction(provider={self.provider}, reference={self.reference})>"
