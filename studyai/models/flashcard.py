"""
Flashcard model - question/answer pairs extracted from an uploaded file
"""
from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from studyai.database import Base
from studyai.models.types import utcnow
import uuid


class Flashcard(Base):
    """
    Flashcards table - flashcard_id is the workflow's identifier, id is ours
    """
    __tablename__ = "flashcards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    chapter_id = Column(UUID(as_uuid=True), ForeignKey("chapters.id"), nullable=False, index=True)
    file_id = Column(UUID(as_uuid=True), ForeignKey("files.id"), nullable=False, index=True)
    flashcard_id = Column(String(255))
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Flashcard(id={self.id}, file_id={self.file_id})>"
