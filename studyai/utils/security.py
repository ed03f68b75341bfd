"""
Shared security utilities for the webhook handlers

Signature verification, input sanitization, format validation,
CORS resolution and safe error messages.
"""
import hashlib
import hmac
import logging
import re
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"
MAX_TEXT_LENGTH = 100_000

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-webhook-signature"
CORS_ALLOW_METHODS = "POST, OPTIONS"

# Store error codes that are safe to describe to clients
SAFE_ERROR_MESSAGES = {
    "23505": "Duplicate entry",
    "23503": "Referenced record not found",
    "42501": "Insufficient permissions",
    "PGRST116": "Resource not found",
    "not_found": "Resource not found",
}
GENERIC_ERROR_MESSAGE = "An error occurred processing your request"


def _to_bytes(value) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def compute_signature(payload, secret: str) -> str:
    """
    Compute the hex HMAC-SHA256 of a raw request body

    Args:
        payload: Exact body bytes (or text) as sent on the wire
        secret: Pre-shared secret

    Returns:
        Lower-case hex digest
    """
    return hmac.new(_to_bytes(secret), _to_bytes(payload), hashlib.sha256).hexdigest()


def verify_signature(payload, signature: Optional[str], secret: str) -> bool:
    """
    Verify a webhook signature in constant time

    Never raises: a missing signature or any failure yields False.
    """
    if not signature:
        return False

    try:
        expected = compute_signature(payload, secret)
        return hmac.compare_digest(expected, signature.strip().lower())
    except Exception as e:
        logger.error(f"Error verifying webhook signature: {str(e)}")
        return False


def sanitize_text(value) -> str:
    """Strip NUL bytes, trim, and cap length; non-strings become ''"""
    if not isinstance(value, str):
        return ""

    sanitized = value.replace("\0", "").strip()
    if len(sanitized) > MAX_TEXT_LENGTH:
        sanitized = sanitized[:MAX_TEXT_LENGTH]
    return sanitized


def is_valid_uuid(value) -> bool:
    """RFC4122 UUID with version 1-5 and variant 8/9/a/b"""
    if not isinstance(value, str):
        return False
    return bool(UUID_PATTERN.match(value))


def is_valid_email(value) -> bool:
    if not isinstance(value, str):
        return False
    return bool(EMAIL_PATTERN.match(value)) and len(value) <= 255


def is_allowed_origin(origin: Optional[str], allowed_origins: List[str]) -> bool:
    if not origin:
        return False
    return origin in allowed_origins or "*" in allowed_origins


def resolve_cors_headers(origin: Optional[str], allowed_origins: List[str]) -> Dict[str, str]:
    """
    Build CORS headers for a webhook response

    The request origin is echoed back only when allow-listed; otherwise the
    first configured origin is used.
    """
    if is_allowed_origin(origin, allowed_origins):
        allow_origin = origin
    else:
        allow_origin = allowed_origins[0] if allowed_origins else "*"

    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
        "Access-Control-Max-Age": "86400",
    }


def _error_code(error) -> Optional[str]:
    """Pull a store error code off an exception (psycopg, SQLAlchemy or ours)"""
    # SQLAlchemy wraps the driver error in .orig and sets its own .code
    for candidate in (getattr(error, "orig", None), error):
        if candidate is None:
            continue
        for attr in ("pgcode", "sqlstate", "code", "status"):
            code = getattr(candidate, attr, None)
            if code:
                return str(code)
    return None


def safe_error_message(error, is_development: bool = False) -> str:
    """
    Error text that is safe to put in an HTTP response body

    Development returns the raw message. Production maps a few known store
    error codes to generic strings and hides everything else.
    """
    if is_development:
        message = getattr(error, "message", None) or str(error)
        return message or "Internal server error"

    return SAFE_ERROR_MESSAGES.get(_error_code(error), GENERIC_ERROR_MESSAGE)
