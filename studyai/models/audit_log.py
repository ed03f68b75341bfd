"""
AuditLog model - append-only security event trail
"""
from sqlalchemy import Column, String, TIMESTAMP, func
from sqlalchemy.dialects.postgresql import UUID
from studyai.database import Base
from studyai.models.types import JSONType, utcnow
import uuid


class AuditLog(Base):
    """
    Audit logs table - rows are inserted, never updated or deleted
    """
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    table_name = Column(String(100), nullable=False)
    record_id = Column(String(100), nullable=True)
    new_data = Column(JSONType, default=dict)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<AuditLog(action={self.action}, table={self.table_name}, record={self.record_id})>"
