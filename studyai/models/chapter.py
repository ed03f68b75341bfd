"""
Chapter model - groups files, chat messages and flashcards
"""
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from studyai.database import Base
from studyai.models.types import utcnow
import uuid


class Chapter(Base):
    """
    Chapters table - owned by a subject, which is owned by a user
    """
    __tablename__ = "chapters"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    subject = relationship("Subject")

    def __repr__(self):
        return f"<Chapter(id={self.id}, title={self.title})>"
