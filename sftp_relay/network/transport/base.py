"""Transport abstractions for the SFTP connection."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseWriteStream(ABC):
    """Remote file handle opened for writing."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    async def abort(self) -> None:
        """Release the handle after a failed write."""
        await self.close()


class BaseSession(ABC):
    """File-transfer capability layered on an established connection."""

    @abstractmethod
    async def open_write_stream(self, path: str, *, flags: str, mode: int) -> BaseWriteStream:
        ...

    async def close(self) -> None:
        return None


class BaseConnection(ABC):
    """Single physical network handle to the remote server."""

    @abstractmethod
    async def connect(self) -> None:
        ...

    @abstractmethod
    async def open_session(self) -> BaseSession:
        ...

    @abstractmethod
    async def wait_closed(self) -> None:
        """Return once the remote side closes or ends the connection."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
