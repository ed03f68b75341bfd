"""
Realtime change feed for chat messages, flashcards and files

Session hooks collect row changes at flush time and publish them once the
transaction commits, so subscribers never see rolled-back state. Events are
routed by chapter_id.
"""
import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Tuple

from sqlalchemy import event
from sqlalchemy.orm import Session

from studyai.models import ChatMessage, FileRecord, Flashcard
from studyai.models.types import utc_isoformat

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

TRACKED_MODELS = (ChatMessage, Flashcard, FileRecord)
PENDING_KEY = "realtime_changes"


@dataclass
class ChangeEvent:
    table: str
    event_type: str
    record: Dict[str, Any]
    chapter_id: str
    commit_timestamp: str = field(default_factory=utc_isoformat)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "eventType": self.event_type,
            "record": self.record,
            "chapter_id": self.chapter_id,
            "commit_timestamp": self.commit_timestamp,
        }


def _jsonable(value):
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def serialize_row(obj) -> Dict[str, Any]:
    return {column.key: _jsonable(getattr(obj, column.key)) for column in obj.__table__.columns}


class ChangeFeed:
    """
    In-process publish/subscribe of row changes keyed by chapter

    Subscribers receive events on their own event loop; publish may be
    called from any thread.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = {}

    def subscribe(self, chapter_id: str) -> asyncio.Queue:
        """Register a queue on the running loop for one chapter"""
        queue: asyncio.Queue = asyncio.Queue()
        loop = asyncio.get_running_loop()
        with self._lock:
            self._subscribers.setdefault(str(chapter_id), []).append((loop, queue))
        logger.debug(f"Realtime subscriber added for chapter {chapter_id}")
        return queue

    def unsubscribe(self, chapter_id: str, queue: asyncio.Queue) -> None:
        with self._lock:
            entries = self._subscribers.get(str(chapter_id), [])
            remaining = [(loop, q) for loop, q in entries if q is not queue]
            if remaining:
                self._subscribers[str(chapter_id)] = remaining
            else:
                self._subscribers.pop(str(chapter_id), None)

    def subscriber_count(self, chapter_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(str(chapter_id), []))

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            entries = list(self._subscribers.get(change.chapter_id, []))

        for loop, queue in entries:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, change)
            except RuntimeError:
                # Loop already closed; the subscriber went away without unsubscribing
                logger.warning(f"Dropping stale realtime subscriber for chapter {change.chapter_id}")
                self.unsubscribe(change.chapter_id, queue)


def apply_change(rows: List[Dict[str, Any]], change: ChangeEvent) -> List[Dict[str, Any]]:
    """
    Reconcile a list of rows with one change, as a subscribed client does

    INSERT and UPDATE upsert by id, DELETE removes.
    """
    record_id = change.record.get("id")
    remaining = [row for row in rows if row.get("id") != record_id]

    if change.event_type == DELETE:
        return remaining

    if change.event_type == UPDATE and len(remaining) < len(rows):
        return [change.record if row.get("id") == record_id else row for row in rows]

    return remaining + [change.record]


# Global instance
change_feed = ChangeFeed()


def _collect_deletes(session: Session, flush_context, instances) -> None:
    # Deleted rows are serialized before the DELETE runs so expired
    # attributes can still be loaded
    pending = session.info.setdefault(PENDING_KEY, [])
    for obj in session.deleted:
        if isinstance(obj, TRACKED_MODELS):
            pending.append((DELETE, obj.__tablename__, serialize_row(obj)))


def _collect_changes(session: Session, flush_context) -> None:
    pending = session.info.setdefault(PENDING_KEY, [])

    for obj in session.new:
        if isinstance(obj, TRACKED_MODELS):
            pending.append((INSERT, obj.__tablename__, serialize_row(obj)))

    for obj in session.dirty:
        if isinstance(obj, TRACKED_MODELS) and session.is_modified(obj, include_collections=False):
            pending.append((UPDATE, obj.__tablename__, serialize_row(obj)))


def _publish_changes(session: Session) -> None:
    pending = session.info.pop(PENDING_KEY, [])
    for event_type, table, record in pending:
        chapter_id = record.get("chapter_id")
        if chapter_id:
            change_feed.publish(ChangeEvent(table, event_type, record, chapter_id))


def _discard_changes(session: Session, previous_transaction) -> None:
    session.info.pop(PENDING_KEY, None)


def register_session_hooks() -> None:
    """Attach the change collectors to every SQLAlchemy session"""
    if not event.contains(Session, "after_flush", _collect_changes):
        event.listen(Session, "before_flush", _collect_deletes)
        event.listen(Session, "after_flush", _collect_changes)
        event.listen(Session, "after_commit", _publish_changes)
        event.listen(Session, "after_soft_rollback", _discard_changes)
        logger.info("Realtime session hooks registered")
