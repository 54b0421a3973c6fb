"""SSH/SFTP transport implementation."""

from __future__ import annotations

import logging
from typing import Any, Optional

import asyncssh

from sftp_relay.config import RelaySettings
from sftp_relay.network.transport.base import BaseConnection, BaseSession, BaseWriteStream

LOGGER = logging.getLogger(__name__)


class SshWriteStream(BaseWriteStream):
    def __init__(self, handle: asyncssh.SFTPClientFile) -> None:
        self._handle = handle
        self._closed = False

    async def write(self, data: bytes) -> None:
        await self._handle.write(data)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._handle.close()


class SshSession(BaseSession):
    def __init__(self, sftp: asyncssh.SFTPClient) -> None:
        self._sftp = sftp

    async def open_write_stream(self, path: str, *, flags: str, mode: int) -> BaseWriteStream:
        LOGGER.debug("Opening remote file %s flags=%s mode=%o", path, flags, mode)
        # encoding=None keeps the handle in binary mode regardless of flags.
        handle = await self._sftp.open(
            path,
            flags,
            attrs=asyncssh.SFTPAttrs(permissions=mode),
            encoding=None,
        )
        return SshWriteStream(handle)

    async def close(self) -> None:
        self._sftp.exit()
        await self._sftp.wait_closed()


class SshConnection(BaseConnection):
    """asyncssh-backed connection to the configured SFTP server."""

    def __init__(self, settings: RelaySettings) -> None:
        self._settings = settings
        self._conn: Optional[asyncssh.SSHClientConnection] = None

    def _connect_options(self) -> dict[str, Any]:
        settings = self._settings
        options: dict[str, Any] = {
            "port": settings.sftp_port,
            "username": settings.sftp_username,
            "password": settings.sftp_password,
            "connect_timeout": settings.connect_timeout_seconds,
            "known_hosts": str(settings.sftp_known_hosts) if settings.sftp_known_hosts else None,
        }
        if settings.sftp_private_key:
            options["client_keys"] = [str(settings.sftp_private_key)]
        return options

    async def connect(self) -> None:
        LOGGER.info("Connecting to SFTP server at %s:%s", self._settings.sftp_host, self._settings.sftp_port)
        self._conn = await asyncssh.connect(self._settings.sftp_host, **self._connect_options())

    async def open_session(self) -> BaseSession:
        if self._conn is None:
            raise RuntimeError("SSH connection not established")
        sftp = await self._conn.start_sftp_client()
        return SshSession(sftp)

    async def wait_closed(self) -> None:
        if self._conn is None:
            return
        await self._conn.wait_closed()

    async def close(self) -> None:
        if self._conn is None:
            return
        LOGGER.info("Closing SSH connection")
        self._conn.close()
        await self._conn.wait_closed()
