"""
Signed download endpoint for stored objects
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
import logging
import mimetypes

from studyai.api.deps import get_storage
from studyai.exceptions import StorageError
from studyai.services.storage_service import LocalStorage

router = APIRouter(prefix="/storage", tags=["storage"])
logger = logging.getLogger(__name__)


@router.get("/{path:path}")
async def download_object(
    path: str,
    expires: int = Query(...),
    token: str = Query(...),
    storage: LocalStorage = Depends(get_storage),
):
    """Serve an object when the URL signature is valid and unexpired"""
    if not storage.verify_signed_url(path, expires, token):
        logger.warning(f"Rejected signed URL for {path}")
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    try:
        content = await storage.read(path)
    except StorageError as e:
        if e.code == "not_found":
            raise HTTPException(status_code=404, detail="Object not found")
        raise HTTPException(status_code=400, detail="Invalid storage path")

    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
