"""
Tests for the chat webhook handler
"""
import json
import uuid

import pytest

from studyai.models import AuditLog, ChatMessage, RateLimitWindow
from studyai.services.audit_service import log_audit_event
from studyai.services.chat_webhook_service import handle_chat_webhook
from studyai.services.workflow_client import WorkflowClient
from studyai.utils.security import SIGNATURE_HEADER, compute_signature, verify_signature

CHAT_WORKFLOW = "http://workflow.test/chat"


def chat_body(chat, **overrides):
    body = {
        "chat_id": str(chat.id),
        "user_id": str(chat.user_id),
        "chapter_id": str(chat.chapter_id),
        "message": chat.message,
        "files": [{"id": str(uuid.uuid4()), "file_name": "notes.pdf", "file_url": "u/s/c/1_notes.pdf"}],
        "history": [],
    }
    body.update(overrides)
    return json.dumps(body).encode("utf-8")


async def run(raw_body, db, settings, rate_limiter, workflow_mock, signature=None):
    client = WorkflowClient(workflow_mock.client(), settings.WORKFLOW_WEBHOOK_SECRET)
    return await handle_chat_webhook(raw_body, signature, db, settings, client, rate_limiter)


class TestSignature:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signature", [None, "deadbeef"])
    async def test_rejects_bad_signature_without_side_effects(
        self, db, settings, rate_limiter, workflow_mock, pending_chat, signature
    ):
        settings.WEBHOOK_SECRET = "hook-secret"

        result = await run(chat_body(pending_chat), db, settings, rate_limiter, workflow_mock, signature)

        assert result.status_code == 401
        assert result.body == {"success": False, "error": "Invalid signature"}
        db.refresh(pending_chat)
        assert pending_chat.response is None
        assert db.query(AuditLog).count() == 0
        assert db.query(RateLimitWindow).count() == 0
        assert workflow_mock.requests == []

    @pytest.mark.asyncio
    async def test_accepts_valid_signature(self, db, settings, rate_limiter, workflow_mock, pending_chat):
        settings.WEBHOOK_SECRET = "hook-secret"
        raw_body = chat_body(pending_chat)

        signature = compute_signature(raw_body, "hook-secret").upper()
        result = await run(raw_body, db, settings, rate_limiter, workflow_mock, signature)

        assert result.status_code == 200


class TestValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["chat_id", "user_id", "chapter_id", "message"])
    async def test_missing_field(self, db, settings, rate_limiter, workflow_mock, pending_chat, field):
        body = json.loads(chat_body(pending_chat))
        del body[field]

        result = await run(json.dumps(body).encode(), db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 400
        assert result.body["error"] == "Missing required fields"
        assert workflow_mock.requests == []
        db.refresh(pending_chat)
        assert pending_chat.response is None

    @pytest.mark.asyncio
    async def test_invalid_uuid(self, db, settings, rate_limiter, workflow_mock, pending_chat):
        result = await run(chat_body(pending_chat, chat_id="not-a-uuid"), db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 400
        assert result.body["error"] == "Invalid ID format"

    @pytest.mark.asyncio
    async def test_blank_message(self, db, settings, rate_limiter, workflow_mock, pending_chat):
        result = await run(chat_body(pending_chat, message=" \0  "), db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 400
        assert result.body["error"] == "Invalid message content"

    @pytest.mark.asyncio
    async def test_malformed_json(self, db, settings, rate_limiter, workflow_mock):
        result = await run(b"{not json", db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 400
        assert result.body == {"success": False, "error": "Invalid JSON payload"}

    @pytest.mark.asyncio
    async def test_null_files_and_history_are_accepted(self, db, settings, rate_limiter, workflow_mock, pending_chat):
        result = await run(chat_body(pending_chat, files=None, history=None), db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 200


class TestMockResponse:

    @pytest.mark.asyncio
    async def test_writes_mock_answer(self, db, settings, rate_limiter, workflow_mock, pending_chat):
        result = await run(chat_body(pending_chat), db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 200
        assert result.body == {"success": True, "message": "Mock response generated", "is_mock": True}

        db.refresh(pending_chat)
        assert "What is a ribosome?" in pending_chat.response
        assert "1 files" in pending_chat.response
        assert pending_chat.meta["is_mock"] is True
        assert pending_chat.meta["processed_at"].endswith("+00:00")
        assert workflow_mock.requests == []

        audit = db.query(AuditLog).one()
        assert audit.action == "chat_message_mock"
        assert audit.table_name == "chats"
        assert audit.record_id == str(pending_chat.id)


class TestWorkflow:

    @pytest.fixture
    def configured(self, settings):
        settings.CHAT_WORKFLOW_URL = CHAT_WORKFLOW
        settings.WORKFLOW_WEBHOOK_SECRET = "workflow-secret"
        return settings

    @pytest.mark.asyncio
    async def test_stores_workflow_answer(self, db, configured, rate_limiter, workflow_mock, pending_chat):
        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"response": "Ribosomes make proteins.", "meta": {"model": "m1"}})

        result = await run(chat_body(pending_chat), db, configured, rate_limiter, workflow_mock)

        assert result.status_code == 200
        assert result.body == {"success": True, "message": "Chat processed successfully"}

        db.refresh(pending_chat)
        assert pending_chat.response == "Ribosomes make proteins."
        assert pending_chat.meta["model"] == "m1"
        assert "processed_at" in pending_chat.meta
        assert db.query(AuditLog).one().action == "chat_message_processed"

    @pytest.mark.asyncio
    async def test_outbound_call_is_signed(self, db, configured, rate_limiter, workflow_mock, pending_chat):
        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"response": "ok"})

        await run(chat_body(pending_chat), db, configured, rate_limiter, workflow_mock)

        request = workflow_mock.requests[0]
        assert verify_signature(request.content, request.headers[SIGNATURE_HEADER], "workflow-secret")

        sent = json.loads(request.content)
        assert sent["chat_id"] == str(pending_chat.id)
        assert sent["message"] == "What is a ribosome?"
        assert len(sent["files"]) == 1
        assert sent["history"] == []
        assert "timestamp" in sent

    @pytest.mark.asyncio
    async def test_workflow_failure_leaves_message_pending(
        self, db, configured, rate_limiter, workflow_mock, pending_chat
    ):
        workflow_mock.routes[CHAT_WORKFLOW] = (500, {"error": "model overloaded"})

        result = await run(chat_body(pending_chat), db, configured, rate_limiter, workflow_mock)

        assert result.status_code == 500
        assert result.body["success"] is False
        db.refresh(pending_chat)
        assert pending_chat.response is None
        assert db.query(AuditLog).count() == 0

    @pytest.mark.asyncio
    async def test_reply_without_response_text(self, db, configured, rate_limiter, workflow_mock, pending_chat):
        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"answer": "misnamed"})

        result = await run(chat_body(pending_chat), db, configured, rate_limiter, workflow_mock)

        assert result.status_code == 500
        db.refresh(pending_chat)
        assert pending_chat.response is None

    @pytest.mark.asyncio
    async def test_redelivery_overwrites_answer(self, db, configured, rate_limiter, workflow_mock, pending_chat):
        raw_body = chat_body(pending_chat)

        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"response": "first"})
        await run(raw_body, db, configured, rate_limiter, workflow_mock)
        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"response": "second"})
        await run(raw_body, db, configured, rate_limiter, workflow_mock)

        rows = db.query(ChatMessage).all()
        assert len(rows) == 1
        db.refresh(rows[0])
        assert rows[0].response == "second"


class TestContextForwarding:

    @pytest.fixture
    def configured(self, settings):
        settings.CHAT_WORKFLOW_URL = CHAT_WORKFLOW
        return settings

    @pytest.mark.asyncio
    async def test_files_and_history_are_relayed_as_received(
        self, db, configured, rate_limiter, workflow_mock, pending_chat
    ):
        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"response": "ok"})
        files = [{"id": 7, "file_name": "a.pdf"}, {"file_name": "b.pdf", "pages": 12}]
        history = [{"message": "earlier", "response": "answer", "rating": 5}]

        result = await run(
            chat_body(pending_chat, files=files, history=history),
            db, configured, rate_limiter, workflow_mock,
        )

        assert result.status_code == 200
        sent = json.loads(workflow_mock.requests[0].content)
        assert sent["files"] == files
        assert sent["history"] == history
        assert sent["timestamp"].endswith("+00:00")

    @pytest.mark.asyncio
    async def test_missing_context_is_sent_as_empty_lists(
        self, db, configured, rate_limiter, workflow_mock, pending_chat
    ):
        workflow_mock.routes[CHAT_WORKFLOW] = (200, {"response": "ok"})
        body = json.loads(chat_body(pending_chat))
        del body["files"]
        del body["history"]

        await run(json.dumps(body).encode(), db, configured, rate_limiter, workflow_mock)

        sent = json.loads(workflow_mock.requests[0].content)
        assert sent["files"] == []
        assert sent["history"] == []

    @pytest.mark.asyncio
    async def test_mock_answer_counts_unusual_file_entries(
        self, db, settings, rate_limiter, workflow_mock, pending_chat
    ):
        files = [{"id": 1}, {"id": 2, "file_name": None}]

        result = await run(chat_body(pending_chat, files=files), db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 200
        db.refresh(pending_chat)
        assert "(2 files)" in pending_chat.response


class TestSecondaryWrites:

    @pytest.mark.asyncio
    async def test_audit_failure_keeps_answer(self, db, engine, settings, rate_limiter, workflow_mock, pending_chat):
        chat_id = pending_chat.id
        raw_body = chat_body(pending_chat)
        db.close()
        AuditLog.__table__.drop(engine)

        result = await run(raw_body, db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 200
        assert result.body["success"] is True
        assert db.get(ChatMessage, chat_id).response is not None

    def test_log_audit_event_reports_failure(self, db, engine):
        db.close()
        AuditLog.__table__.drop(engine)

        assert log_audit_event(db, str(uuid.uuid4()), "chat_message_processed", "chats", "1") is False


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_second_delivery_is_limited(self, db, settings, rate_limiter, workflow_mock, pending_chat):
        settings.CHAT_RATE_LIMIT = 1
        raw_body = chat_body(pending_chat)

        first = await run(raw_body, db, settings, rate_limiter, workflow_mock)
        second = await run(raw_body, db, settings, rate_limiter, workflow_mock)

        assert first.status_code == 200
        assert second.status_code == 429
        assert second.body == {"success": False, "error": "Rate limit exceeded. Please try again later."}


class TestErrorMessages:

    @pytest.mark.asyncio
    async def test_production_hides_details(self, db, settings, rate_limiter, workflow_mock, chapter, user_id):
        settings.ENVIRONMENT = "production"
        body = json.dumps({
            "chat_id": str(uuid.uuid4()),
            "user_id": str(user_id),
            "chapter_id": str(chapter.id),
            "message": "Is anyone there?",
        }).encode()

        result = await run(body, db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 500
        assert result.body == {"success": False, "error": "Resource not found"}

    @pytest.mark.asyncio
    async def test_development_shows_details(self, db, settings, rate_limiter, workflow_mock, chapter, user_id):
        body = json.dumps({
            "chat_id": str(uuid.uuid4()),
            "user_id": str(user_id),
            "chapter_id": str(chapter.id),
            "message": "Is anyone there?",
        }).encode()

        result = await run(body, db, settings, rate_limiter, workflow_mock)

        assert result.status_code == 500
        assert result.body["error"] == "Chat message not found"
