"""
Pydantic schemas for chat messages
"""
from pydantic import BaseModel, constr
from typing import Any, Dict, Optional
from uuid import UUID
from datetime import datetime


class MessageCreate(BaseModel):
    """Schema for sending a chat message"""
    user_id: UUID
    message: constr(strip_whitespace=True, min_length=1, max_length=4000)


class ChatMessageResponse(BaseModel):
    """A chat message; response is null while the answer is pending"""
    id: UUID
    chapter_id: UUID
    user_id: UUID
    message: str
    response: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConversationCleared(BaseModel):
    message: str
    deleted: int
