"""
Chat webhook: relays a new chat message to the AI workflow and stores the answer

Message lifecycle: created with response NULL by the create-message action,
dispatched here once validation passes, then answered (response set). When
the workflow call fails the row stays pending; nothing retries it.
"""
import logging
import uuid
from typing import Any, Dict, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from studyai.config import Settings
from studyai.exceptions import DownstreamError, PersistenceError, PipelineError, ValidationError
from studyai.models import ChatMessage
from studyai.models.types import utc_isoformat
from studyai.schemas.webhook import ChatWebhookPayload, WorkflowChatReply
from studyai.services.audit_service import log_audit_event
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

ENDPOINT_NAME = "chat-webhook"


def build_mock_response(message: str, file_count: int) -> str:
    """Placeholder answer used when no chat workflow is configured"""
    return (
        f'I\'ve received your question: "{message[:100]}..."\n\n'
        f"Based on your uploaded materials ({file_count} files), "
        f"I can help you understand this topic better.\n\n"
        f"Note: This is a mock response. Configure the CHAT_WORKFLOW_URL "
        f"environment variable to enable real LLM integration."
    )


def _write_response(db: Session, chat_id: str, response: str, meta: Dict[str, Any]) -> None:
    """Set response and meta on the chat row; the only mutation per round trip"""
    try:
        chat = db.get(ChatMessage, uuid.UUID(chat_id))
        if chat is None:
            raise PersistenceError("Chat message not found", code="not_found")

        chat.response = response
        chat.meta = meta
        db.commit()
    except PersistenceError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating chat record {chat_id}: {str(e)}")
        pgcode = getattr(getattr(e, "orig", None), "pgcode", None)
        raise PersistenceError("Failed to update chat record", code=pgcode) from e


def _validate(raw_body: bytes, signature: Optional[str], db: Session, settings: Settings,
              rate_limiter: RateLimiter):
    authenticate(raw_body, signature, settings.WEBHOOK_SECRET)

    payload = parse_payload(raw_body, ChatWebhookPayload)
    if payload.missing_required():
        raise ValidationError("Missing required fields")

    require_uuids(payload.chat_id, payload.user_id, payload.chapter_id)

    message = sanitize_text(payload.message)
    if not message:
        raise ValidationError("Invalid message content")

    enforce_rate_limit(rate_limiter, db, payload.user_id, ENDPOINT_NAME, settings.CHAT_RATE_LIMIT)
    return payload, message


async def handle_chat_webhook(
    raw_body: bytes,
    signature: Optional[str],
    db: Session,
    settings: Settings,
    workflow_client: WorkflowClient,
    rate_limiter: RateLimiter,
) -> WebhookResult:
    """
    Process one chat webhook delivery

    Args:
        raw_body: Exact request body, as signed by the sender
        signature: Value of the x-webhook-signature header, if any
        db: Database session
        settings: Active settings
        workflow_client: Client signing calls to the chat workflow
        rate_limiter: Limiter for the (user, chat-webhook) window

    Returns:
        WebhookResult with the HTTP status and JSON envelope
    """
    try:
        payload, message = _validate(raw_body, signature, db, settings, rate_limiter)

        files = payload.files or []
        history = payload.history or []
        file_count = len(files) if isinstance(files, list) else 0

        logger.info(
            f"Chat webhook received: chat_id={payload.chat_id} chapter_id={payload.chapter_id} "
            f"message_preview={message[:50]!r} file_count={file_count}"
        )

        if not settings.CHAT_WORKFLOW_URL:
            logger.warning("CHAT_WORKFLOW_URL not configured, using mock response")

            _write_response(
                db,
                payload.chat_id,
                build_mock_response(message, file_count),
                {"is_mock": True, "processed_at": utc_isoformat()},
            )
            log_audit_event(db, payload.user_id, "chat_message_mock", "chats", payload.chat_id)

            return WebhookResult(200, {
                "success": True,
                "message": "Mock response generated",
                "is_mock": True,
            })

        workflow_payload = {
            "chat_id": payload.chat_id,
            "user_id": payload.user_id,
            "chapter_id": payload.chapter_id,
            "message": message,
            "files": files,
            "history": history,
            "timestamp": utc_isoformat(),
        }

        data = await workflow_client.post_json(settings.CHAT_WORKFLOW_URL, workflow_payload)

        try:
            reply = WorkflowChatReply.model_validate(data)
        except SchemaError as e:
            raise DownstreamError("Chat workflow reply has no response text") from e

        _write_response(
            db,
            payload.chat_id,
            reply.response,
            {**(reply.meta or {}), "processed_at": utc_isoformat()},
        )
        log_audit_event(db, payload.user_id, "chat_message_processed", "chats", payload.chat_id)

        logger.info(f"Chat processed successfully: {payload.chat_id}")
        return WebhookResult(200, {"success": True, "message": "Chat processed successfully"})

    except PipelineError as e:
        if e.status_code >= 500:
            logger.error(f"Error in chat-webhook: {e.message}")
        return error_result(e, settings.is_development)
    except Exception as e:
        logger.error(f"Error in chat-webhook: {str(e)}", exc_info=True)
        return error_result(e, settings.is_development)
