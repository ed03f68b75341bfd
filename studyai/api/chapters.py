"""
Subject and chapter API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging

from studyai.api.deps import get_owned_subject
from studyai.database import get_db
from studyai.models import Chapter, Subject
from studyai.schemas.chapter import ChapterCreate, ChapterResponse, SubjectCreate, SubjectResponse

router = APIRouter(prefix="/api/subjects", tags=["subjects"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=SubjectResponse, status_code=201)
async def create_subject(request: SubjectCreate, db: Session = Depends(get_db)):
    subject = Subject(user_id=request.user_id, name=request.name.strip())

    try:
        db.add(subject)
        db.commit()
        db.refresh(subject)
    except Exception as e:
        logger.error(f"Failed to create subject: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create subject")

    logger.info(f"Subject created: {subject.id}")
    return subject


@router.get("/", response_model=List[SubjectResponse])
async def list_subjects(user_id: UUID, db: Session = Depends(get_db)):
    return (
        db.query(Subject)
        .filter(Subject.user_id == user_id)
        .order_by(Subject.created_at.asc())
        .all()
    )


@router.post("/{subject_id}/chapters", response_model=ChapterResponse, status_code=201)
async def create_chapter(
    subject_id: UUID,
    request: ChapterCreate,
    db: Session = Depends(get_db),
):
    """Create a chapter in a subject owned by the user"""
    get_owned_subject(db, subject_id, request.user_id)

    chapter = Chapter(subject_id=subject_id, title=request.title.strip())

    try:
        db.add(chapter)
        db.commit()
        db.refresh(chapter)
    except Exception as e:
        logger.error(f"Failed to create chapter: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create chapter")

    logger.info(f"Chapter created: {chapter.id}")
    return chapter


@router.get("/{subject_id}/chapters", response_model=List[ChapterResponse])
async def list_chapters(subject_id: UUID, user_id: UUID, db: Session = Depends(get_db)):
    get_owned_subject(db, subject_id, user_id)

    return (
        db.query(Chapter)
        .filter(Chapter.subject_id == subject_id)
        .order_by(Chapter.created_at.asc())
        .all()
    )
