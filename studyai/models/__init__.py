"""
Database models package
"""
from studyai.models.subject import Subject
from studyai.models.chapter import Chapter
from studyai.models.chat_message import ChatMessage
from studyai.models.file_record import FileRecord
from studyai.models.flashcard import Flashcard
from studyai.models.rate_limit_window import RateLimitWindow
from studyai.models.audit_log import AuditLog

__all__ = [
    "Subject",
    "Chapter",
    "ChatMessage",
    "FileRecord",
    "Flashcard",
    "RateLimitWindow",
    "AuditLog",
]
