"""Network stack (transport/connection state/lifecycle) for the SFTP server."""

from sftp_relay.network.connection import ConnectionManager
from sftp_relay.network.connection_state import ConnectionState, ConnectionTracker, NotReadyError
from sftp_relay.network.transport.base import BaseConnection, BaseSession, BaseWriteStream
from sftp_relay.network.transport.memory import MemoryConnection, MemoryStore
from sftp_relay.network.transport.ssh import SshConnection

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ConnectionTracker",
    "NotReadyError",
    "BaseConnection",
    "BaseSession",
    "BaseWriteStream",
    "MemoryConnection",
    "MemoryStore",
    "SshConnection",
]
