"""
Flashcard API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
import logging

from studyai.api.deps import get_owned_chapter, get_owned_file
from studyai.database import get_db
from studyai.models import Flashcard
from studyai.schemas.file import DeleteResponse, FlashcardResponse

router = APIRouter(tags=["flashcards"])
logger = logging.getLogger(__name__)


@router.get("/api/chapters/{chapter_id}/flashcards", response_model=List[FlashcardResponse])
async def get_chapter_flashcards(
    chapter_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    get_owned_chapter(db, chapter_id, user_id)

    return (
        db.query(Flashcard)
        .filter(Flashcard.chapter_id == chapter_id)
        .order_by(Flashcard.created_at.asc())
        .all()
    )


@router.get("/api/files/{file_id}/flashcards", response_model=List[FlashcardResponse])
async def get_file_flashcards(
    file_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    get_owned_file(db, file_id, user_id)

    return (
        db.query(Flashcard)
        .filter(Flashcard.file_id == file_id)
        .order_by(Flashcard.created_at.asc())
        .all()
    )


@router.delete("/api/files/{file_id}/flashcards", response_model=DeleteResponse)
async def delete_file_flashcards(
    file_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
):
    """Remove every flashcard generated from a file"""
    get_owned_file(db, file_id, user_id)

    try:
        for flashcard in db.query(Flashcard).filter(Flashcard.file_id == file_id).all():
            db.delete(flashcard)
        db.commit()
    except Exception as e:
        logger.error(f"Error deleting flashcards for file {file_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete flashcards")

    return DeleteResponse(message="Flashcards deleted successfully")
