"""
FileRecord model - metadata for an uploaded lecture file
"""
from sqlalchemy import Column, String, Text, TIMESTAMP, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from studyai.database import Base
from studyai.models.types import utcnow
import uuid


class FileRecord(Base):
    """
    Files table - file_url is the storage path, never a public URL
    """
    __tablename__ = "files"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    chapter_id = Column(UUID(as_uuid=True), ForeignKey("chapters.id"), nullable=False, index=True)
    file_name = Column(String(512), nullable=False)
    file_url = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<FileRecord(id={self.id}, file_name={self.file_name})>"
