"""
ChatMessage model - a user question and the assistant's (eventual) answer
"""
from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from studyai.database import Base
from studyai.models.types import JSONType, utcnow
import uuid


class ChatMessage(Base):
    """
    Chats table - response is NULL until the chat webhook writes the answer
    """
    __tablename__ = "chats"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    chapter_id = Column(UUID(as_uuid=True), ForeignKey("chapters.id"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=True)
    meta = Column(JSONType, default=dict)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    @property
    def is_pending(self) -> bool:
        return self.response is None

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, chapter_id={self.chapter_id}, pending={self.is_pending})>"
