"""
Precondition steps shared by the webhook handlers
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from studyai.exceptions import AuthError, PipelineError, RateLimitError, ValidationError
from studyai.utils.security import is_valid_uuid, safe_error_message, verify_signature

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


@dataclass
class WebhookResult:
    """Status code and JSON envelope produced by a handler"""
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


def error_result(error: Exception, is_development: bool) -> WebhookResult:
    """Convert an error into the {success: false, error} envelope"""
    status_code = getattr(error, "status_code", 500)
    if status_code < 500 and isinstance(error, PipelineError):
        message = error.message
    else:
        message = safe_error_message(error, is_development)
    return WebhookResult(status_code, {"success": False, "error": message})


def authenticate(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    """Require a valid signature when a shared secret is configured"""
    if not secret:
        return
    if not verify_signature(raw_body, signature, secret):
        logger.warning("Invalid webhook signature detected")
        raise AuthError("Invalid signature")


def parse_payload(raw_body: bytes, schema: Type[PayloadT]) -> PayloadT:
    try:
        data = json.loads(raw_body)
    except ValueError:
        raise ValidationError("Invalid JSON payload")

    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    try:
        return schema.model_validate(data)
    except SchemaError as e:
        logger.warning(f"Webhook payload rejected: {e.error_count()} schema errors")
        raise ValidationError("Invalid payload")


def require_uuids(*values) -> None:
    if not all(is_valid_uuid(value) for value in values):
        raise ValidationError("Invalid ID format")


def enforce_rate_limit(rate_limiter, db, user_id: str, endpoint: str, max_requests: int) -> None:
    if rate_limiter.is_rate_limited(db, user_id, endpoint, max_requests):
        logger.warning(f"Rate limit exceeded for user: {user_id}")
        raise RateLimitError("Rate limit exceeded. Please try again later.")
