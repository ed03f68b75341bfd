"""
Shared fixtures: in-memory database, settings, storage and HTTP mocks
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import json
import uuid

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import studyai.models  # noqa: F401
from studyai.config import Settings
from studyai.database import Base
from studyai.models import Chapter, ChatMessage, Subject
from studyai.services.realtime import register_session_hooks
from studyai.services.storage_service import LocalStorage
from studyai.utils.rate_limiter import RateLimiter

register_session_hooks()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        ENVIRONMENT="development",
        STORAGE_DIR=str(tmp_path / "storage"),
        STORAGE_BASE_URL="http://testserver/storage",
        STORAGE_SIGNING_SECRET="storage-secret",
        WEBHOOK_SECRET=None,
        WORKFLOW_WEBHOOK_SECRET=None,
        CHAT_WORKFLOW_URL=None,
        PDF_PROCESSOR_URL=None,
        FLASHCARDS_WORKFLOW_URL=None,
        FILE_UPLOAD_WORKFLOW_URL=None,
    )


@pytest.fixture
def storage(settings):
    return LocalStorage(settings.STORAGE_DIR, settings.STORAGE_BASE_URL, settings.STORAGE_SIGNING_SECRET)


@pytest.fixture
def rate_limiter():
    return RateLimiter(window_minutes=1, fail_open=True)


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def chapter(db, user_id):
    subject = Subject(user_id=user_id, name="Biology")
    db.add(subject)
    db.commit()
    chapter = Chapter(subject_id=subject.id, title="Cells")
    db.add(chapter)
    db.commit()
    db.refresh(chapter)
    return chapter


@pytest.fixture
def pending_chat(db, chapter, user_id):
    chat = ChatMessage(chapter_id=chapter.id, user_id=user_id, message="What is a ribosome?", meta={})
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat


class WorkflowMock:
    """httpx transport that records requests and answers per URL"""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.routes.get(str(request.url))
        if reply is None:
            return httpx.Response(404, json={"error": "no route"})
        if isinstance(reply, Exception):
            raise reply
        status_code, body = reply
        return httpx.Response(status_code, json=body)

    def bodies(self, url):
        return [json.loads(r.content) for r in self.requests if str(r.url) == url]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class RecordingDispatcher:
    """Captures fire-and-forget submissions without running them"""

    def __init__(self):
        self.calls = []

    def submit(self, func, *args, description="background task", **kwargs):
        self.calls.append({"func": func, "args": args, "description": description})
        return None


@pytest.fixture
def workflow_mock():
    return WorkflowMock()


@pytest.fixture
def recording_dispatcher():
    return RecordingDispatcher()
