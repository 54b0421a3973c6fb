"""Connection lifecycle manager that owns reconnection to the SFTP server."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

from sftp_relay.config import RelaySettings
from sftp_relay.network.connection_state import ConnectionState, ConnectionTracker
from sftp_relay.network.transport.base import BaseConnection

LOGGER = logging.getLogger(__name__)

ConnectionFactory = Callable[[RelaySettings], BaseConnection]
Sleep = Callable[[float], Awaitable[None]]


class ConnectionManager:
    """Re-attempts connection/session establishment on a fixed timer.

    An attempt is only made while no session exists. Transport failures are
    logged and absorbed into ``tracker`` state; callers notice them only as a
    missing session.
    """

    def __init__(
        self,
        settings: RelaySettings,
        connection_factory: ConnectionFactory,
        *,
        tracker: Optional[ConnectionTracker] = None,
        sleep: Sleep = asyncio.sleep,
        initial_delay: float = 0.0,
    ) -> None:
        self._settings = settings
        self._connection_factory = connection_factory
        self.tracker = tracker if tracker is not None else ConnectionTracker()
        self._sleep = sleep
        self._initial_delay = float(initial_delay)
        self._interval = float(settings.task_seconds)
        self._timer_task: Optional[asyncio.Task[None]] = None
        self._watch_task: Optional[asyncio.Task[None]] = None

    async def start(self) -> None:
        """Arm the reconnect timer."""

        if self._timer_task and not self._timer_task.done():
            return
        self._timer_task = asyncio.create_task(self._schedule_loop(), name="sftp-reconnect")

    async def stop(self) -> None:
        """Cancel the reconnect timer and close the live connection."""

        timer = self._timer_task
        if timer:
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        self._timer_task = None
        await self._retire_connection()
        self.tracker.disconnect()

    async def run_task(self) -> None:
        """Make one reconnect attempt unless a session already exists."""

        LOGGER.info("Task running...")
        if not self._settings.sftp_configured:
            return
        if self.tracker.session is not None:
            return

        await self._retire_connection()

        LOGGER.info("SSH client connecting")
        connection = self._connection_factory(self._settings)
        generation = self.tracker.attach(connection)
        try:
            await connection.connect()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("SSH client error\n  %s", exc)
            if self.tracker.is_current(generation):
                self.tracker.disconnect()
            return

        if not self.tracker.is_current(generation):
            return
        self.tracker.transition(ConnectionState.READY)
        self._watch_task = asyncio.create_task(self._watch_closed(connection, generation), name="sftp-watch")
        LOGGER.info("SSH client ready")

        try:
            session = await connection.open_session()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("SFTP session error\n  %s", exc)
            return

        if not self.tracker.is_current(generation) or self.tracker.state is not ConnectionState.READY:
            # Connection closed while the session was being negotiated.
            with contextlib.suppress(Exception):
                await session.close()
            return
        self.tracker.establish(session)
        LOGGER.info("SFTP session established")

    async def _schedule_loop(self) -> None:
        delay = self._initial_delay
        while True:
            LOGGER.info("Task starting in %s seconds", delay)
            await self._sleep(delay)
            try:
                await self.run_task()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Task error\n  %s", exc)
            delay = self._interval

    async def _watch_closed(self, connection: BaseConnection, generation: int) -> None:
        try:
            await connection.wait_closed()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("SSH client error\n  %s", exc)
        if not self.tracker.is_current(generation):
            return
        self.tracker.disconnect()
        LOGGER.info("SSH client close")

    async def _retire_connection(self) -> None:
        watcher = self._watch_task
        self._watch_task = None
        if watcher:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        previous = self.tracker.connection
        if previous is None:
            return
        # A new generation is issued on attach; retire this one now so its
        # close signal cannot clear a newer session.
        self.tracker.generation += 1
        self.tracker.connection = None
        try:
            await previous.close()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress SSH client close error", exc_info=True)
