"""
Pydantic schemas for inbound webhook payloads
"""
from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, Optional


class ChatWebhookPayload(BaseModel):
    """
    Body sent by the create-message action to the chat webhook

    files and history are context for the workflow and are relayed exactly
    as received.
    """
    model_config = ConfigDict(extra="ignore")

    chat_id: Optional[str] = None
    user_id: Optional[str] = None
    chapter_id: Optional[str] = None
    message: Optional[str] = None
    files: Any = None
    history: Any = None

    def missing_required(self) -> bool:
        return not (self.chat_id and self.user_id and self.chapter_id and self.message)


class FileUploadWebhookPayload(BaseModel):
    """Body sent by the upload action to the file-upload webhook"""
    model_config = ConfigDict(extra="ignore")

    user_id: Optional[str] = None
    subject_id: Optional[str] = None
    chapter_id: Optional[str] = None
    file_id: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None

    def missing_required(self) -> bool:
        return not (self.user_id and self.chapter_id and self.file_url and self.file_name)


class WorkflowChatReply(BaseModel):
    """Answer returned by the chat workflow"""
    model_config = ConfigDict(extra="ignore")

    response: str
    meta: Optional[Dict[str, Any]] = None
