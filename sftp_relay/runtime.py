"""Wires the queue, connection manager, and upload coordinator together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sftp_relay.config import RelaySettings
from sftp_relay.network.connection import ConnectionFactory, ConnectionManager
from sftp_relay.network.connection_state import ConnectionTracker
from sftp_relay.network.transport.memory import MemoryConnection, MemoryStore
from sftp_relay.network.transport.ssh import SshConnection
from sftp_relay.queue import SequentialQueue
from sftp_relay.upload.coordinator import UploadCoordinator

LOGGER = logging.getLogger(__name__)


@dataclass
class RelayRuntime:
    settings: RelaySettings
    tracker: ConnectionTracker
    manager: ConnectionManager
    queue: SequentialQueue
    coordinator: UploadCoordinator

    async def start(self) -> None:
        await self.manager.start()

    async def stop(self) -> None:
        """Drop not-yet-started uploads, then tear the connection down."""

        LOGGER.info("Relay shutdown requested")
        self.queue.cancel()
        await self.manager.stop()


def resolve_connection_factory(settings: RelaySettings) -> ConnectionFactory:
    if settings.transport == "memory":
        store = MemoryStore()
        return lambda _settings: MemoryConnection(store)
    if settings.sftp_known_hosts is None:
        LOGGER.warning("sftp_known_hosts is not set; SFTP server host keys will not be verified")
    return SshConnection


def build_runtime(
    settings: RelaySettings,
    connection_factory: Optional[ConnectionFactory] = None,
) -> RelayRuntime:
    factory = connection_factory or resolve_connection_factory(settings)
    LOGGER.debug("Initialising relay runtime with transport=%s", settings.transport)
    tracker = ConnectionTracker()
    queue = SequentialQueue()
    queue.add_empty_hook(lambda: LOGGER.debug("Upload queue drained"))
    manager = ConnectionManager(settings, factory, tracker=tracker)
    coordinator = UploadCoordinator(settings=settings, tracker=tracker, queue=queue)
    return RelayRuntime(
        settings=settings,
        tracker=tracker,
        manager=manager,
        queue=queue,
        coordinator=coordinator,
    )
