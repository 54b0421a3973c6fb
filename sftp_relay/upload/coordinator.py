"""Turns accepted webhook events into serialised SFTP writes."""

from __future__ import annotations

import contextlib
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Union

from pydantic import BaseModel, Field

from sftp_relay.config import RelaySettings
from sftp_relay.network.connection_state import ConnectionTracker, NotReadyError
from sftp_relay.network.transport.base import BaseSession, BaseWriteStream
from sftp_relay.queue import SequentialQueue
from sftp_relay.upload.formatting import format_body
from sftp_relay.upload.paths import build_path

LOGGER = logging.getLogger(__name__)


class UploadError(RuntimeError):
    """Raised when a queued transfer fails or never runs."""


class WebhookEvent(BaseModel):
    id: str
    body: Union[list, dict]
    params: Dict[str, Any] = Field(default_factory=dict)


class UploadResult(BaseModel):
    id: str
    path: str


@dataclass
class UploadCoordinator:
    """Checks readiness and pushes one transfer per event onto the queue.

    The queue guarantees that transfers never overlap on the single session.
    The coordinator only reads ``tracker``; it never changes connection state.
    """

    settings: RelaySettings
    tracker: ConnectionTracker
    queue: SequentialQueue = field(default_factory=SequentialQueue)

    async def handle(self, event: WebhookEvent, spec: str) -> UploadResult:
        LOGGER.info("Webhook data received %s", event.id)
        self.tracker.require_ready()

        path = build_path(spec, event.params)
        written = await self.queue.push(lambda: self._upload(path, event.body))
        if written is None:
            raise UploadError(f"Upload cancelled before it started: {path}")

        LOGGER.info("Webhook data published %s %s", event.id, path)
        return UploadResult(id=event.id, path=path)

    async def _upload(self, path: str, body: Any) -> int:
        settings = self.settings
        try:
            data = format_body(body, format=settings.format, final_newline=settings.final_newline).encode(
                settings.encoding
            )
            # The session may have dropped while this task waited its turn.
            session = self.tracker.require_ready()
            async with self._open_stream(session, path) as stream:
                await stream.write(data)
                if settings.auto_close:
                    await stream.close()
        except NotReadyError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise UploadError(f"Upload error: {exc}") from exc
        LOGGER.debug("Wrote %s byte(s) to %s", len(data), path)
        return len(data)

    @asynccontextmanager
    async def _open_stream(self, session: BaseSession, path: str) -> AsyncIterator[BaseWriteStream]:
        stream = await session.open_write_stream(
            path,
            flags=self.settings.file_flags,
            mode=self.settings.file_mode,
        )
        try:
            yield stream
        except BaseException:
            with contextlib.suppress(Exception):
                await stream.abort()
            raise
        finally:
            if not self.settings.auto_close:
                await stream.close()
