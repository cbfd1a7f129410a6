"""
UsageCounter Model - Per-user event counts for plan limits
"""

from sqlalchemy import Column, String, Integer, Date, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
import uuid

from docuchat.database import Base


class UsageCounter(Base):
    """
    Count of one event type in one day or month window

    period is "day" or "month"; window_start is the first day of the window,
    so a single row covers a whole calendar day or calendar month.
    """

    __tablename__ = "usage_counters"
    __table_args__ = (
        UniqueConstraint("user_id", "event_type", "period", "window_start", name="uq_usage_counter_window"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    period = Column(String(10), nullable=False)
    window_start = Column(Date, nullable=False)
    used = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<UsageCounter(user_id={self.user_id}, {self.event_type}/{self.period}={self.used})>"
