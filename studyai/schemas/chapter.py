"""
Pydantic schemas for subjects and chapters
"""
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime


class SubjectCreate(BaseModel):
    """Schema for creating a subject"""
    user_id: UUID
    name: str = Field(..., min_length=1, max_length=255, description="Subject name")


class SubjectResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChapterCreate(BaseModel):
    """Schema for creating a chapter inside a subject"""
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=255, description="Chapter title")


class ChapterResponse(BaseModel):
    id: UUID
    subject_id: UUID
    title: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
