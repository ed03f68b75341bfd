"""
Audit logging service for security-relevant pipeline steps
"""
from typing import Optional, Dict, Any
import uuid
import logging

from sqlalchemy.orm import Session

from studyai.models import AuditLog

logger = logging.getLogger(__name__)


def log_audit_event(
    db: Session,
    user_id: Optional[str],
    action: str,
    table_name: str,
    record_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Append an audit log entry.

    Best effort: a failure is rolled back and logged, never raised, so that
    auditing can not abort the operation being audited.

    Args:
        db: Database session
        user_id: Acting user, or None for system events
        action: Action identifier (e.g., "chat_message_processed", "file_uploaded")
        table_name: Table the action touched
        record_id: Id of the affected row
        details: Additional structured payload

    Returns:
        True if the entry was written, False otherwise
    """
    try:
        log = AuditLog(
            user_id=uuid.UUID(str(user_id)) if user_id else None,
            action=action,
            table_name=table_name,
            record_id=str(record_id) if record_id else None,
            new_data=details or {},
        )

        db.add(log)
        db.commit()

        logger.info(f"[AUDIT] {action} | user={user_id} | {table_name}:{record_id}")
        return True

    except Exception as e:
        logger.error(f"[AUDIT] Failed to create audit log: {e}")
        try:
            db.rollback()
        except Exception as rollback_error:
            logger.error(f"[AUDIT] Rollback failed: {rollback_error}")
        return False
