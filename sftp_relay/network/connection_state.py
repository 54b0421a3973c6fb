"""Connection/session state shared between the lifecycle manager and uploaders."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sftp_relay.network.transport.base import BaseConnection, BaseSession


class NotReadyError(RuntimeError):
    """Raised when an upload is requested without a live connection and session."""


class ConnectionState(enum.Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    READY = "READY"
    SESSION_ESTABLISHED = "SESSION_ESTABLISHED"


_ALLOWED = {
    ConnectionState.DISCONNECTED: {ConnectionState.CONNECTING},
    ConnectionState.CONNECTING: {ConnectionState.READY, ConnectionState.DISCONNECTED},
    ConnectionState.READY: {
        ConnectionState.SESSION_ESTABLISHED,
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTING,
    },
    ConnectionState.SESSION_ESTABLISHED: {ConnectionState.DISCONNECTED},
}


@dataclass
class ConnectionTracker:
    """Owns the single connection/session pair.

    Only the lifecycle manager mutates it; uploaders read readiness. Each new
    connection bumps ``generation`` so late signals from a replaced connection
    can be told apart from current ones.
    """

    state: ConnectionState = ConnectionState.DISCONNECTED
    connection: Optional[BaseConnection] = None
    session: Optional[BaseSession] = None
    generation: int = 0
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: ConnectionState) -> ConnectionState:
        """Move into a new state, validating allowed transitions."""

        if next_state not in _ALLOWED.get(self.state, set()):
            raise ValueError(f"Invalid transition {self.state.value} → {next_state.value}")
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)
        return next_state

    def attach(self, connection: BaseConnection) -> int:
        """Install a fresh connection and return its generation."""

        self.generation += 1
        self.connection = connection
        self.session = None
        self.transition(ConnectionState.CONNECTING)
        return self.generation

    def establish(self, session: BaseSession) -> ConnectionState:
        self.session = session
        return self.transition(ConnectionState.SESSION_ESTABLISHED)

    def disconnect(self) -> ConnectionState:
        self.session = None
        if self.state is ConnectionState.DISCONNECTED:
            return self.state
        return self.transition(ConnectionState.DISCONNECTED)

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    @property
    def is_ready(self) -> bool:
        return self.connection is not None and self.session is not None

    def require_ready(self) -> BaseSession:
        """Return the live session or raise ``NotReadyError``."""

        if self.connection is None:
            raise NotReadyError("SSH client not ready")
        if self.session is None:
            raise NotReadyError("SFTP session not established")
        return self.session
