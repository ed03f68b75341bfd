"""
Column types and helpers shared by the models
"""
from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite for local runs and tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_isoformat() -> str:
    """Timezone-aware UTC timestamp for JSON payloads and metadata"""
    return datetime.now(timezone.utc).isoformat()
