"""Transport implementations for the SFTP connection."""

from .base import BaseConnection, BaseSession, BaseWriteStream
from .memory import MemoryConnection, MemoryStore
from .ssh import SshConnection

__all__ = [
    "BaseConnection",
    "BaseSession",
    "BaseWriteStream",
    "MemoryConnection",
    "MemoryStore",
    "SshConnection",
]
