"""
Tests for fire-and-forget dispatch
"""
import asyncio
import logging

import pytest

from studyai.services.dispatcher import BackgroundDispatcher


@pytest.mark.asyncio
async def test_submit_does_not_block_caller():
    dispatcher = BackgroundDispatcher()
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow():
        started.set()
        await release.wait()

    dispatcher.submit(slow, description="slow call")
    assert dispatcher.pending == 1

    await started.wait()
    release.set()
    await dispatcher.drain(timeout=1)

    assert dispatcher.pending == 0
    assert dispatcher.dead_letters == []


@pytest.mark.asyncio
async def test_passes_arguments():
    dispatcher = BackgroundDispatcher()
    received = []

    async def record(url, payload, retries=0):
        received.append((url, payload, retries))

    dispatcher.submit(record, "http://workflow.test", {"a": 1}, retries=2, description="record")
    await dispatcher.drain(timeout=1)

    assert received == [("http://workflow.test", {"a": 1}, 2)]


@pytest.mark.asyncio
async def test_failure_is_dead_lettered(caplog):
    dispatcher = BackgroundDispatcher()

    async def broken():
        raise RuntimeError("workflow unreachable")

    with caplog.at_level(logging.ERROR, logger="studyai.deadletter"):
        dispatcher.submit(broken, description="pdf-processor file=1")
        await dispatcher.drain(timeout=1)

    letters = dispatcher.dead_letters
    assert len(letters) == 1
    assert letters[0].description == "pdf-processor file=1"
    assert letters[0].error == "workflow unreachable"
    assert any("pdf-processor file=1 failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_dead_letters_are_bounded():
    dispatcher = BackgroundDispatcher(max_dead_letters=2)

    async def broken(n):
        raise ValueError(f"failure {n}")

    for n in range(3):
        dispatcher.submit(broken, n, description=f"call {n}")
    await dispatcher.drain(timeout=1)

    assert [d.error for d in dispatcher.dead_letters] == ["failure 1", "failure 2"]


@pytest.mark.asyncio
async def test_drain_without_tasks_returns():
    await BackgroundDispatcher().drain()
