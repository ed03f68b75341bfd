"""
Webhook endpoints for chat messages and file uploads

Both endpoints read the raw body (the signature covers the exact bytes) and
resolve their own CORS headers.
"""
import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from studyai.api.deps import get_http_client, get_storage
from studyai.config import Settings, get_settings
from studyai.database import get_db
from studyai.services.chat_webhook_service import handle_chat_webhook
from studyai.services.dispatcher import BackgroundDispatcher, get_dispatcher
from studyai.services.file_webhook_service import handle_file_upload_webhook
from studyai.services.storage_service import LocalStorage
from studyai.services.workflow_client import WorkflowClient
from studyai.utils.rate_limiter import RateLimiter, get_rate_limiter
from studyai.utils.security import SIGNATURE_HEADER, resolve_cors_headers

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


def _cors_headers(request: Request, settings: Settings) -> dict:
    return resolve_cors_headers(request.headers.get("origin"), settings.allowed_origins_list)


@router.options("/chat")
@router.options("/file-upload")
async def webhook_preflight(request: Request, settings: Settings = Depends(get_settings)):
    """CORS preflight; the body is never processed"""
    return PlainTextResponse("ok", headers=_cors_headers(request, settings))


@router.post("/chat")
async def chat_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Relay a newly created chat message to the AI workflow

    Writes the answer onto the chat row; the row stays pending if the
    workflow fails.
    """
    raw_body = await request.body()

    result = await handle_chat_webhook(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        db,
        settings,
        WorkflowClient(http_client, settings.WORKFLOW_WEBHOOK_SECRET),
        rate_limiter,
    )

    return JSONResponse(
        status_code=result.status_code,
        content=result.body,
        headers=_cors_headers(request, settings),
    )


@router.post("/file-upload")
async def file_upload_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    storage: LocalStorage = Depends(get_storage),
    dispatcher: BackgroundDispatcher = Depends(get_dispatcher),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    React to a stored file: signed URL, document processing, flashcards,
    notification
    """
    raw_body = await request.body()

    result = await handle_file_upload_webhook(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        db,
        settings,
        storage,
        WorkflowClient(http_client, settings.WORKFLOW_WEBHOOK_SECRET),
        dispatcher,
        rate_limiter,
    )

    return JSONResponse(
        status_code=result.status_code,
        content=result.body,
        headers=_cors_headers(request, settings),
    )
