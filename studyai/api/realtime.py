"""
Realtime WebSocket feed of chapter changes
"""
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session
from uuid import UUID
import asyncio
import logging

from studyai.database import get_db
from studyai.models import Chapter, Subject
from studyai.services.realtime import change_feed

router = APIRouter(prefix="/api/realtime", tags=["realtime"])
logger = logging.getLogger(__name__)


async def _forward_changes(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        change = await queue.get()
        await websocket.send_json(change.to_dict())


@router.websocket("/chapters/{chapter_id}")
async def chapter_changes(
    websocket: WebSocket,
    chapter_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """
    Stream INSERT/UPDATE/DELETE events for the chapter's chats, files and
    flashcards

    Messages sent by the client are read and ignored; reading is how a
    disconnect is noticed.
    """
    owned = (
        db.query(Chapter)
        .join(Subject, Chapter.subject_id == Subject.id)
        .filter(Chapter.id == chapter_id, Subject.user_id == user_id)
        .first()
    )
    # Release the connection; the socket may stay open for a long time
    db.close()

    if owned is None:
        await websocket.close(code=4403)
        return

    await websocket.accept()
    queue = change_feed.subscribe(str(chapter_id))
    sender = asyncio.create_task(_forward_changes(websocket, queue))
    logger.info(f"Realtime client connected: chapter={chapter_id}")

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Realtime client disconnected: chapter={chapter_id}")
    finally:
        sender.cancel()
        change_feed.unsubscribe(str(chapter_id), queue)
