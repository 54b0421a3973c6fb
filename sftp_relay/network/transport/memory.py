"""In-process transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from sftp_relay.network.transport.base import BaseConnection, BaseSession, BaseWriteStream

LOGGER = logging.getLogger(__name__)


class MemoryStore:
    """Remote filesystem stand-in: path -> (bytes, mode)."""

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.modes: Dict[str, int] = {}


class MemoryWriteStream(BaseWriteStream):
    def __init__(self, store: MemoryStore, path: str, *, flags: str, mode: int) -> None:
        self._store = store
        self._path = path
        self._mode = mode
        self._append = "a" in flags
        self._buffer = bytearray()
        self.closed = False
        self.aborted = False

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise OSError(f"Write on closed stream {self._path}")
        self._buffer.extend(data)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.aborted:
            return
        existing = self._store.files.get(self._path, b"") if self._append else b""
        self._store.files[self._path] = existing + bytes(self._buffer)
        self._store.modes[self._path] = self._mode

    async def abort(self) -> None:
        self.aborted = True
        await self.close()


class MemorySession(BaseSession):
    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def open_write_stream(self, path: str, *, flags: str, mode: int) -> BaseWriteStream:
        LOGGER.debug("Memory session open(): %s", path)
        return MemoryWriteStream(self._store, path, flags=flags, mode=mode)


class MemoryConnection(BaseConnection):
    """Connection that always succeeds and never drops on its own."""

    def __init__(self, store: Optional[MemoryStore] = None) -> None:
        self.store = store or MemoryStore()
        self._closed = asyncio.Event()

    async def connect(self) -> None:
        LOGGER.debug("Memory connection connect()")

    async def open_session(self) -> BaseSession:
        return MemorySession(self.store)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def close(self) -> None:
        LOGGER.debug("Memory connection close()")
        self._closed.set()
