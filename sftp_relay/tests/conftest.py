import asyncio
from typing import List, Optional

import pytest

from sftp_relay.config import RelaySettings
from sftp_relay.network.transport.base import BaseConnection, BaseSession, BaseWriteStream


class FakeWriteStream(BaseWriteStream):
    def __init__(self, session: "FakeSession", path: str) -> None:
        self._session = session
        self.path = path
        self.chunks: List[bytes] = []
        self.close_calls = 0
        self.aborted = False

    async def write(self, data: bytes) -> None:
        if self._session.write_error is not None:
            raise self._session.write_error
        if self._session.write_delay:
            await asyncio.sleep(self._session.write_delay)
        self._session.log.append(("write", self.path))
        self.chunks.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_calls == 1 and not self.aborted:
            self._session.files[self.path] = b"".join(self.chunks)
            self._session.log.append(("close", self.path))

    async def abort(self) -> None:
        self.aborted = True
        await self.close()


class FakeSession(BaseSession):
    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.streams: List[FakeWriteStream] = []
        self.log: List[tuple[str, str]] = []
        self.opened: List[tuple[str, str, int]] = []
        self.write_error: Optional[Exception] = None
        self.open_error: Optional[Exception] = None
        self.write_delay: float = 0.0
        self.closed = False

    async def open_write_stream(self, path: str, *, flags: str, mode: int) -> BaseWriteStream:
        if self.open_error is not None:
            raise self.open_error
        self.opened.append((path, flags, mode))
        self.log.append(("open", path))
        stream = FakeWriteStream(self, path)
        self.streams.append(stream)
        return stream

    async def close(self) -> None:
        self.closed = True


class FakeConnection(BaseConnection):
    """Scriptable connection: optionally fails connect or session negotiation."""

    def __init__(
        self,
        *,
        connect_error: Optional[Exception] = None,
        session_error: Optional[Exception] = None,
        session: Optional[BaseSession] = None,
    ) -> None:
        self.connect_error = connect_error
        self.session_error = session_error
        self.session = session or FakeSession()
        self.connect_calls = 0
        self.close_calls = 0
        self._closed = asyncio.Event()

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    async def open_session(self) -> BaseSession:
        if self.session_error is not None:
            raise self.session_error
        return self.session

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def close(self) -> None:
        self.close_calls += 1
        self._closed.set()

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._closed.set()


class ScriptedFactory:
    """Connection factory that hands out prepared connections in order."""

    def __init__(self, *connections: FakeConnection) -> None:
        self._connections = list(connections)
        self.created: List[FakeConnection] = []

    def __call__(self, settings: RelaySettings) -> FakeConnection:
        connection = self._connections.pop(0) if self._connections else FakeConnection()
        self.created.append(connection)
        return connection


@pytest.fixture
def settings() -> RelaySettings:
    return RelaySettings(
        secret="s3cret",
        sftp_host="sftp.test",
        task_seconds=5,
        format="jsonl",
        final_newline=True,
    )


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def scripted_factory():
    return ScriptedFactory
