"""Local filesystem blob store for uploads and conversion artifacts.

Objects are addressed by locators of the form ``/objects/uploads/<id>``,
which double as the HTTP paths the API serves them from. File I/O runs in
worker threads so large PDFs do not stall the event loop.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

LOCATOR_PREFIX = "/objects/"
UPLOAD_DIR = "uploads"
STREAM_CHUNK_SIZE = 64 * 1024


class ObjectNotFoundError(Exception):
    """Raised when a locator does not resolve to a stored object."""

    pass


def normalize_locator(raw: str) -> str:
    """Reduce an upload URL or path to its ``/objects/...`` locator.

    Absolute URLs (as handed to clients for uploading) keep only their path;
    query strings are dropped.
    """
    path = urlparse(raw).path if "://" in raw else raw.split("?", 1)[0]
    if not path.startswith("/"):
        path = f"/{path}"
    return path


class LocalBlobStore:
    """Blob store backed by a directory on local disk."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def get_upload_locator(self) -> str:
        """Allocate a fresh locator for a new object."""
        return f"{LOCATOR_PREFIX}{UPLOAD_DIR}/{uuid.uuid4()}"

    def _resolve(self, locator: str) -> Path:
        locator = normalize_locator(locator)
        if not locator.startswith(LOCATOR_PREFIX):
            raise ObjectNotFoundError(f"Not an object locator: {locator}")

        relative = locator[len(LOCATOR_PREFIX) :]
        path = (self._root / relative).resolve()
        if path == self._root or not path.is_relative_to(self._root):
            raise ObjectNotFoundError(f"Locator escapes storage root: {locator}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, locator: str, data: bytes) -> None:
        path = self._resolve(locator)
        await asyncio.to_thread(self._write, path, data)
        logger.debug(f"Stored {len(data)} bytes at {locator}")

    async def fetch(self, locator: str) -> bytes:
        """Read a whole object.

        Raises:
            ObjectNotFoundError: If nothing is stored at the locator.
        """
        path = self._resolve(locator)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ObjectNotFoundError(f"Object not found: {locator}") from e

    async def stream(self, locator: str, chunk_size: int = STREAM_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Read an object in chunks.

        Existence is checked before the first chunk so callers can map a
        missing object to a 404 before a response starts.

        Raises:
            ObjectNotFoundError: If nothing is stored at the locator.
        """
        path = self._resolve(locator)
        if not await asyncio.to_thread(path.is_file):
            raise ObjectNotFoundError(f"Object not found: {locator}")

        async def chunks() -> AsyncIterator[bytes]:
            handle = await asyncio.to_thread(path.open, "rb")
            try:
                while data := await asyncio.to_thread(handle.read, chunk_size):
                    yield data
            finally:
                handle.close()

        return chunks()
