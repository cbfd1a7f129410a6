"""
User Model - Authentication, plan and credit balance
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from docuchat.database import Base


class User(Base):
    """
    User model for authentication, billing plan and credit ownership

    Attributes:
        id: Unique user identifier (UUID)
        email: User email (unique, indexed for fast lookup)
        hashed_password: Bcrypt hashed password
        plan: Subscription tier (free, basic, pro, elite)
        credit_balance: Spendable credits, never negative
        subscription_renews_at: End of the paid period, if any
        is_active: Whether user can authenticate

    Relationships:
        api_keys: User's API keys (one-to-many)
        documents: User's uploaded documents (one-to-many)
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("credit_balance >= 0", name="ck_users_credit_balance_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)

    plan = Column(String(20), nullable=False, default="free")
    credit_balance = Column(Integer, nullable=False, default=0)
    subscription_renews_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    api_keys = relationship("APIKey", back_populates="user", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, plan={self.plan})>"
