"""
Chat API endpoints

Creating a message stores a pending row and hands it to the chat webhook
without waiting; the answer arrives later through the realtime feed.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging

import httpx

from studyai.api.deps import get_http_client, get_owned_chapter
from studyai.config import Settings, get_settings
from studyai.database import get_db
from studyai.models import ChatMessage, FileRecord
from studyai.schemas.chat import ChatMessageResponse, ConversationCleared, MessageCreate
from studyai.services.dispatcher import BackgroundDispatcher, get_dispatcher
from studyai.services.workflow_client import WorkflowClient

router = APIRouter(prefix="/api/chapters", tags=["chat"])
logger = logging.getLogger(__name__)


def build_chat_webhook_body(chat: ChatMessage, db: Session, history_limit: int) -> dict:
    """
    Webhook body for a new message: the message plus chapter context

    History holds the most recent answered exchanges, oldest first.
    """
    files = (
        db.query(FileRecord)
        .filter(FileRecord.chapter_id == chat.chapter_id)
        .order_by(FileRecord.created_at.asc())
        .all()
    )

    answered = (
        db.query(ChatMessage)
        .filter(
            ChatMessage.chapter_id == chat.chapter_id,
            ChatMessage.response.isnot(None),
            ChatMessage.id != chat.id,
        )
        .order_by(ChatMessage.created_at.desc())
        .limit(history_limit)
        .all()
    )

    return {
        "chat_id": str(chat.id),
        "user_id": str(chat.user_id),
        "chapter_id": str(chat.chapter_id),
        "message": chat.message,
        "files": [
            {"id": str(f.id), "file_name": f.file_name, "file_url": f.file_url}
            for f in files
        ],
        "history": [
            {
                "message": m.message,
                "response": m.response,
                "created_at": m.created_at.isoformat() if m.created_at else None,
            }
            for m in reversed(answered)
        ],
    }


@router.post("/{chapter_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def create_message(
    chapter_id: UUID,
    request: MessageCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
):
    """
    Send a chat message

    - Verifies the chapter belongs to the user
    - Stores the message with response = null
    - Fires the signed chat webhook with files and history as context
    """
    get_owned_chapter(db, chapter_id, request.user_id)

    chat = ChatMessage(
        chapter_id=chapter_id,
        user_id=request.user_id,
        message=request.message,
        response=None,
        meta={},
    )

    try:
        db.add(chat)
        db.commit()
        db.refresh(chat)
    except Exception as e:
        logger.error(f"Error creating chat message: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create message")

    body = build_chat_webhook_body(chat, db, settings.CHAT_HISTORY_LIMIT)

    webhook_client = WorkflowClient(http_client, settings.WEBHOOK_SECRET)
    dispatcher.submit(
        webhook_client.post,
        settings.CHAT_WEBHOOK_URL,
        body,
        description=f"chat-webhook chat={chat.id}",
    )

    logger.info(f"Chat message created: {chat.id} (files: {len(body['files'])}, history: {len(body['history'])})")
    return chat


@router.get("/{chapter_id}/messages", response_model=List[ChatMessageResponse])
async def get_messages(
    chapter_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """All messages of a chapter, oldest first"""
    get_owned_chapter(db, chapter_id, user_id)

    return (
        db.query(ChatMessage)
        .filter(ChatMessage.chapter_id == chapter_id)
        .order_by(ChatMessage.created_at.asc())
        .all()
    )


@router.delete("/{chapter_id}/messages", response_model=ConversationCleared)
async def delete_chapter_messages(
    chapter_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """Clear the chapter's conversation"""
    get_owned_chapter(db, chapter_id, user_id)

    messages = db.query(ChatMessage).filter(ChatMessage.chapter_id == chapter_id).all()

    try:
        for message in messages:
            db.delete(message)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting messages for chapter {chapter_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete messages")

    logger.info(f"Conversation cleared: chapter={chapter_id} deleted={len(messages)}")
    return ConversationCleared(message="Conversation deleted successfully", deleted=len(messages))
