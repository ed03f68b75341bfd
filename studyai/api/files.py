"""
File management API endpoints
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging
import os
import re
import time

import httpx

from studyai.api.deps import get_http_client, get_owned_chapter, get_owned_file, get_storage
from studyai.config import Settings, get_settings
from studyai.database import get_db
from studyai.models import ChatMessage, FileRecord, Flashcard
from studyai.schemas.file import DeleteResponse, FileResponse, SignedUrlResponse
from studyai.services.dispatcher import BackgroundDispatcher, get_dispatcher
from studyai.services.storage_service import LocalStorage
from studyai.services.workflow_client import WorkflowClient

router = APIRouter(tags=["files"])
logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-powerpoint",
}
ALLOWED_EXTENSIONS = (".pdf", ".pptx", ".ppt")


def is_allowed_upload(filename: str, content_type: str) -> bool:
    if content_type in ALLOWED_MIME_TYPES:
        return True
    return filename.lower().endswith(ALLOWED_EXTENSIONS)


def build_storage_path(user_id: UUID, subject_id: UUID, chapter_id: UUID, filename: str) -> str:
    """user/subject/chapter/<epoch ms>_<name with unsafe characters replaced>"""
    safe_name = re.sub(r"[^a-zA-Z0-9.-]", "_", os.path.basename(filename))
    return f"{user_id}/{subject_id}/{chapter_id}/{int(time.time() * 1000)}_{safe_name}"


@router.post("/api/chapters/{chapter_id}/files", response_model=FileResponse, status_code=201)
async def upload_file(
    chapter_id: UUID,
    user_id: UUID = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    storage: LocalStorage = Depends(get_storage),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
):
    """
    Upload a lecture file to a chapter

    - Accepts PDF and PowerPoint files up to MAX_FILE_SIZE
    - Stores the binary under user/subject/chapter/
    - Saves file metadata (the storage path, not a public URL)
    - Fires the signed file-upload webhook
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="File is required")

    if not is_allowed_upload(file.filename, file.content_type or ""):
        raise HTTPException(status_code=400, detail="Only PDF and PPTX files are allowed")

    chapter = get_owned_chapter(db, chapter_id, user_id)

    content = await file.read()
    if len(content) > settings.MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size must be less than {settings.MAX_FILE_SIZE // (1024 * 1024)}MB",
        )

    storage_path = build_storage_path(user_id, chapter.subject_id, chapter_id, file.filename)

    try:
        await storage.upload(storage_path, content)
    except Exception as e:
        logger.error(f"Storage upload error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to upload file")

    file_record = FileRecord(
        chapter_id=chapter_id,
        file_name=file.filename,
        file_url=storage_path,
    )

    try:
        db.add(file_record)
        db.commit()
        db.refresh(file_record)
    except Exception as e:
        logger.error(f"Database insert error: {str(e)}")
        db.rollback()
        await storage.remove([storage_path])
        raise HTTPException(status_code=500, detail="Failed to save file metadata")

    webhook_client = WorkflowClient(http_client, settings.WEBHOOK_SECRET)
    dispatcher.submit(
        webhook_client.post,
        settings.FILE_UPLOAD_WEBHOOK_URL,
        {
            "user_id": str(user_id),
            "subject_id": str(chapter.subject_id),
            "chapter_id": str(chapter_id),
            "file_id": str(file_record.id),
            "file_url": storage_path,
            "file_name": file.filename,
        },
        description=f"file-upload-webhook file={file_record.id}",
    )

    logger.info(f"File uploaded: {file_record.id} ({storage_path})")
    return file_record


@router.get("/api/chapters/{chapter_id}/files", response_model=List[FileResponse])
async def get_chapter_files(
    chapter_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """Files of a chapter, newest first"""
    get_owned_chapter(db, chapter_id, user_id)

    return (
        db.query(FileRecord)
        .filter(FileRecord.chapter_id == chapter_id)
        .order_by(FileRecord.created_at.desc())
        .all()
    )


@router.delete("/api/files/{file_id}", response_model=DeleteResponse)
async def delete_file(
    file_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    """
    Delete a file and everything that depends on it

    Order: flashcards, the chapter's chat messages (their context referenced
    the file), the stored object, then the file row. Only the last step can
    fail the request.
    """
    file_record = get_owned_file(db, file_id, user_id)
    chapter_id = file_record.chapter_id
    storage_path = file_record.file_url

    try:
        for flashcard in db.query(Flashcard).filter(Flashcard.file_id == file_id).all():
            db.delete(flashcard)
        db.commit()
    except Exception as e:
        logger.error(f"Flashcards deletion error: {str(e)}")
        db.rollback()

    try:
        for message in db.query(ChatMessage).filter(ChatMessage.chapter_id == chapter_id).all():
            db.delete(message)
        db.commit()
    except Exception as e:
        logger.error(f"Chats deletion error: {str(e)}")
        db.rollback()

    try:
        await storage.remove([storage_path])
    except Exception as e:
        logger.error(f"Storage deletion error: {str(e)}")

    try:
        db.delete(file_record)
        db.commit()
    except Exception as e:
        logger.error(f"Database deletion error: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete file")

    logger.info(f"File deleted: {file_id}")
    return DeleteResponse(message="File deleted successfully")


@router.get("/api/files/{file_id}/signed-url", response_model=SignedUrlResponse)
async def get_signed_file_url(
    file_id: UUID,
    user_id: UUID,
    expires_in: int = Query(3600, ge=1, le=604800),
    db: Session = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    """Short-lived download URL for the file owner"""
    file_record = get_owned_file(db, file_id, user_id)

    try:
        signed_url = storage.create_signed_url(file_record.file_url, expires_in)
    except Exception as e:
        logger.error(f"Error creating signed URL: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to generate download URL")

    return SignedUrlResponse(signed_url=signed_url, expires_in=expires_in)
