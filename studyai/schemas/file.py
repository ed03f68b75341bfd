"""
Pydantic schemas for files and flashcards
"""
from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime


class FileResponse(BaseModel):
    """Stored file metadata"""
    id: UUID
    chapter_id: UUID
    file_name: str
    file_url: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SignedUrlResponse(BaseModel):
    signed_url: str
    expires_in: int


class FlashcardResponse(BaseModel):
    """A generated flashcard"""
    id: UUID
    chapter_id: UUID
    file_id: UUID
    flashcard_id: Optional[str] = None
    question: str
    answer: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeleteResponse(BaseModel):
    message: str
