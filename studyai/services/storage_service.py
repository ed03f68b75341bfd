"""
Local object storage with signed, time-limited download URLs
"""
import logging
import os
import time
from pathlib import Path
from typing import List
from urllib.parse import quote

import aiofiles
import aiofiles.os

from studyai.exceptions import StorageError
from studyai.utils.security import compute_signature, verify_signature

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    Stores uploaded binaries under a root directory

    Objects are addressed by a relative storage path such as
    "user/subject/chapter/1700000000000_notes.pdf". Nothing is publicly
    reachable; access goes through signed URLs.
    """

    def __init__(self, root: str, base_url: str, signing_secret: str):
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")
        self.signing_secret = signing_secret

    def _resolve(self, path: str) -> Path:
        if not path or path.startswith("/") or "\\" in path:
            raise StorageError(f"Invalid storage path: {path!r}")
        full_path = (self.root / path).resolve()
        if self.root not in full_path.parents:
            raise StorageError(f"Invalid storage path: {path!r}")
        return full_path

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    async def upload(self, path: str, data: bytes) -> None:
        """Write a new object; existing objects are never overwritten"""
        full_path = self._resolve(path)
        if full_path.exists():
            raise StorageError(f"Object already exists: {path}")

        try:
            os.makedirs(full_path.parent, exist_ok=True)
            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to store {path}: {e}") from e

        logger.info(f"Stored object {path} ({len(data)} bytes)")

    async def read(self, path: str) -> bytes:
        full_path = self._resolve(path)
        if not full_path.is_file():
            raise StorageError(f"Object not found: {path}", code="not_found")

        async with aiofiles.open(full_path, "rb") as f:
            return await f.read()

    async def remove(self, paths: List[str]) -> None:
        """Delete objects; missing objects are ignored"""
        for path in paths:
            full_path = self._resolve(path)
            try:
                await aiofiles.os.remove(full_path)
                logger.info(f"Removed object {path}")
            except FileNotFoundError:
                logger.info(f"Object already gone: {path}")
            except OSError as e:
                raise StorageError(f"Failed to remove {path}: {e}") from e

    def _token(self, path: str, expires: int) -> str:
        return compute_signature(f"{path}:{expires}", self.signing_secret)

    def create_signed_url(self, path: str, expires_in: int) -> str:
        """
        Create a download URL for an existing object

        Args:
            path: Storage path
            expires_in: Lifetime in seconds

        Raises:
            StorageError: invalid path or missing object
        """
        if not self.exists(path):
            raise StorageError(f"Object not found: {path}", code="not_found")

        expires = int(time.time()) + expires_in
        token = self._token(path, expires)
        return f"{self.base_url}/{quote(path)}?expires={expires}&token={token}"

    def verify_signed_url(self, path: str, expires: int, token: str) -> bool:
        if expires < int(time.time()):
            return False
        return verify_signature(f"{path}:{expires}", token, self.signing_secret)
