"""
Shared FastAPI dependencies and ownership checks
"""
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from studyai.config import Settings, get_settings
from studyai.models import Chapter, FileRecord, Subject
from studyai.services.storage_service import LocalStorage


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared outbound client created at startup"""
    return request.app.state.http_client


def get_storage(settings: Settings = Depends(get_settings)) -> LocalStorage:
    return LocalStorage(
        root=settings.STORAGE_DIR,
        base_url=settings.STORAGE_BASE_URL,
        signing_secret=settings.STORAGE_SIGNING_SECRET,
    )


def get_owned_subject(db: Session, subject_id: UUID, user_id: UUID) -> Subject:
    subject = db.query(Subject).filter(Subject.id == subject_id).first()
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    if subject.user_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized access to subject")
    return subject


def get_owned_chapter(db: Session, chapter_id: UUID, user_id: UUID) -> Chapter:
    """Load a chapter and require that its subject belongs to user_id"""
    chapter = (
        db.query(Chapter)
        .join(Subject, Chapter.subject_id == Subject.id)
        .filter(Chapter.id == chapter_id)
        .first()
    )
    if not chapter:
        raise HTTPException(status_code=404, detail="Chapter not found")
    if chapter.subject.user_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized access to chapter")
    return chapter


def get_owned_file(db: Session, file_id: UUID, user_id: UUID) -> FileRecord:
    file_record = db.query(FileRecord).filter(FileRecord.id == file_id).first()
    if not file_record:
        raise HTTPException(status_code=404, detail="File not found")
    get_owned_chapter(db, file_record.chapter_id, user_id)
    return file_record
