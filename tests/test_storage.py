"""
Tests for local object storage and signed URLs
"""
import time
from urllib.parse import parse_qs, urlparse

import pytest

from studyai.exceptions import StorageError


@pytest.mark.asyncio
async def test_upload_and_read(storage):
    await storage.upload("u/s/c/1_notes.pdf", b"%PDF-1.4")

    assert storage.exists("u/s/c/1_notes.pdf")
    assert await storage.read("u/s/c/1_notes.pdf") == b"%PDF-1.4"


@pytest.mark.asyncio
async def test_upload_never_overwrites(storage):
    await storage.upload("u/s/c/1_notes.pdf", b"first")

    with pytest.raises(StorageError):
        await storage.upload("u/s/c/1_notes.pdf", b"second")
    assert await storage.read("u/s/c/1_notes.pdf") == b"first"


@pytest.mark.asyncio
async def test_read_missing(storage):
    with pytest.raises(StorageError) as exc_info:
        await storage.read("u/s/c/missing.pdf")
    assert exc_info.value.code == "not_found"


@pytest.mark.parametrize("path", ["../outside.pdf", "u/../../outside.pdf", "/etc/passwd", "u\\s.pdf", ""])
def test_rejects_paths_outside_root(storage, path):
    with pytest.raises(StorageError):
        storage.exists(path)


@pytest.mark.asyncio
async def test_remove_ignores_missing(storage):
    await storage.upload("u/s/c/1_notes.pdf", b"data")

    await storage.remove(["u/s/c/1_notes.pdf", "u/s/c/already_gone.pdf"])

    assert not storage.exists("u/s/c/1_notes.pdf")


class TestSignedUrls:

    @staticmethod
    def parse(url):
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        return parsed, int(query["expires"][0]), query["token"][0]

    @pytest.mark.asyncio
    async def test_signed_url_verifies(self, storage):
        await storage.upload("u/s/c/1_notes.pdf", b"data")

        url = storage.create_signed_url("u/s/c/1_notes.pdf", 3600)
        parsed, expires, token = self.parse(url)

        assert url.startswith("http://testserver/storage/u/s/c/1_notes.pdf?")
        assert expires > time.time()
        assert storage.verify_signed_url("u/s/c/1_notes.pdf", expires, token)

    @pytest.mark.asyncio
    async def test_tampered_url_fails(self, storage):
        await storage.upload("u/s/c/1_notes.pdf", b"data")
        _, expires, token = self.parse(storage.create_signed_url("u/s/c/1_notes.pdf", 3600))

        assert not storage.verify_signed_url("u/s/c/other.pdf", expires, token)
        assert not storage.verify_signed_url("u/s/c/1_notes.pdf", expires + 60, token)

    def test_expired_url_fails(self, storage):
        expires = int(time.time()) - 1
        token = storage._token("u/s/c/1_notes.pdf", expires)

        assert not storage.verify_signed_url("u/s/c/1_notes.pdf", expires, token)

    def test_missing_object_has_no_url(self, storage):
        with pytest.raises(StorageError):
            storage.create_signed_url("u/s/c/missing.pdf", 3600)
