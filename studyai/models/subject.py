"""
Subject model - top-level ownership scope for chapters
"""
from sqlalchemy import Column, String, TIMESTAMP, func
from sqlalchemy.dialects.postgresql import UUID
from studyai.database import Base
from studyai.models.types import utcnow
import uuid


class Subject(Base):
    """
    Subjects table - one row per course a user is studying
    """
    __tablename__ = "subjects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Subject(id={self.id}, name={self.name})>"
