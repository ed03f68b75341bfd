"""
RateLimitWindow model - fixed-window request counters per (user, endpoint)
"""
from sqlalchemy import Column, String, Integer, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from studyai.database import Base
import uuid


class RateLimitWindow(Base):
    """
    Rate limit tracking table - window_start never changes once written
    """
    __tablename__ = "rate_limit_tracking"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    endpoint = Column(String(100), nullable=False, index=True)
    request_count = Column(Integer, nullable=False, default=1)
    window_start = Column(TIMESTAMP, nullable=False)

    def __repr__(self):
        return (
            f"<RateLimitWindow(user_id={self.user_id}, endpoint={self.endpoint}, "
            f"count={self.request_count})>"
        )
