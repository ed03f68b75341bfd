"""
File-upload webhook: signed URL, then fan-out to the document workflows

Only the signed URL is required for success. The document processor and the
generic notification are fire-and-forget; flashcard generation is awaited
because its result is persisted here. Failures of any fan-out step are logged
and do not change the response.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from studyai.config import Settings
from studyai.exceptions import DownstreamError, PipelineError, ValidationError
from studyai.models import Flashcard
from studyai.models.types import utc_isoformat
from studyai.schemas.webhook import FileUploadWebhookPayload
from studyai.services.audit_service import log_audit_event
from studyai.services.dispatcher import BackgroundDispatcher
from studyai.services.flashcard_parser import decode_flashcard_response
from studyai.services.storage_service import LocalStorage
from studyai.services.webhook_common import (
    WebhookResult,
    authenticate,
    enforce_rate_limit,
    error_result,
    parse_payload,
    require_uuids,
)
from studyai.services.workflow_client import WorkflowClient
from studyai.utils.rate_limiter import RateLimiter
from studyai.utils.security import sanitize_text

logger = logging.getLogger(__name__)

ENDPOINT_NAME = "file-upload-webhook"


def _validate(raw_body: bytes, signature: Optional[str], db: Session, settings: Settings,
              rate_limiter: RateLimiter):
    authenticate(raw_body, signature, settings.WEBHOOK_SECRET)

    payload = parse_payload(raw_body, FileUploadWebhookPayload)
    if payload.missing_required():
        raise ValidationError("Missing required fields")

    require_uuids(payload.user_id, payload.chapter_id)

    file_name = sanitize_text(payload.file_name)
    if not file_name:
        raise ValidationError("Invalid filename")

    enforce_rate_limit(
        rate_limiter, db, payload.user_id, ENDPOINT_NAME, settings.FILE_UPLOAD_RATE_LIMIT
    )
    return payload, file_name


async def generate_flashcards(
    db: Session,
    workflow_client: WorkflowClient,
    url: str,
    payload: FileUploadWebhookPayload,
) -> int:
    """
    Request flashcards for a stored file and insert them

    Best effort: every failure is logged and reported as zero flashcards.

    Returns:
        Number of flashcard rows inserted
    """
    logger.info(f"Triggering flashcards generation: {url}")

    try:
        data = await workflow_client.post_json(url, {"url": payload.file_url})
    except DownstreamError as e:
        logger.error(f"Flashcards generation error: {e.message}")
        return 0

    result = decode_flashcard_response(data)
    if not result.ok:
        logger.warning(f"No flashcards stored for file {payload.file_id} ({result.kind})")
        return 0

    try:
        chapter_id = uuid.UUID(payload.chapter_id)
        file_id = uuid.UUID(payload.file_id)
        rows = [
            Flashcard(
                chapter_id=chapter_id,
                file_id=file_id,
                flashcard_id=card.flashcard_id,
                question=card.question,
                answer=card.answer,
            )
            for card in result.cards
        ]
        db.add_all(rows)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error inserting flashcards for file {payload.file_id}: {str(e)}")
        return 0

    logger.info(f"Inserted {len(rows)} flashcards for file {payload.file_id}")
    return len(rows)


async def handle_file_upload_webhook(
    raw_body: bytes,
    signature: Optional[str],
    db: Session,
    settings: Settings,
    storage: LocalStorage,
    workflow_client: WorkflowClient,
    dispatcher: BackgroundDispatcher,
    rate_limiter: RateLimiter,
) -> WebhookResult:
    """
    Process one file-upload webhook delivery

    Returns:
        WebhookResult; 200 once preconditions pass and the signed URL exists
    """
    try:
        payload, file_name = _validate(raw_body, signature, db, settings, rate_limiter)
    except PipelineError as e:
        return error_result(e, settings.is_development)
    except Exception as e:
        logger.error(f"Error in file-upload-webhook: {str(e)}", exc_info=True)
        return error_result(e, settings.is_development)

    # Every downstream consumer needs this URL
    try:
        signed_url = storage.create_signed_url(payload.file_url, settings.SIGNED_URL_EXPIRES_IN)
    except Exception as e:
        logger.error(f"Error creating signed URL for {payload.file_url}: {str(e)}")
        return WebhookResult(500, {"success": False, "error": "Failed to create signed URL"})

    if settings.PDF_PROCESSOR_URL and payload.file_id:
        logger.info(f"Triggering PDF processor: {settings.PDF_PROCESSOR_URL}")
        dispatcher.submit(
            workflow_client.post,
            settings.PDF_PROCESSOR_URL,
            {
                "file_id": payload.file_id,
                "file_url": payload.file_url,
                "file_name": file_name,
                "chapter_id": payload.chapter_id,
                "user_id": payload.user_id,
                "signed_url": signed_url,
            },
            description=f"pdf-processor file={payload.file_id}",
        )
    else:
        logger.info("PDF processor not configured or missing file_id")

    flashcards_created = 0
    if payload.file_id and settings.FLASHCARDS_WORKFLOW_URL:
        flashcards_created = await generate_flashcards(
            db, workflow_client, settings.FLASHCARDS_WORKFLOW_URL, payload
        )

    if settings.FILE_UPLOAD_WORKFLOW_URL:
        dispatcher.submit(
            workflow_client.post,
            settings.FILE_UPLOAD_WORKFLOW_URL,
            {
                "event": "file_upload",
                "timestamp": utc_isoformat(),
                "user_id": payload.user_id,
                "subject_id": payload.subject_id,
                "chapter_id": payload.chapter_id,
                "file_name": file_name,
                "file_url": signed_url,
            },
            description=f"file-upload-notification file={payload.file_id}",
        )

    log_audit_event(db, payload.user_id, "file_uploaded", "files", payload.file_id)

    return WebhookResult(200, {
        "success": True,
        "message": "File upload processed",
        "pdf_processor_triggered": bool(settings.PDF_PROCESSOR_URL),
        "flashcards_created": flashcards_created,
    })
