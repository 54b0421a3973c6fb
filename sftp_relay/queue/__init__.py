"""Sequential work queue used to serialise uploads."""

from sftp_relay.queue.seq_queue import QueueClosedError, QueuedTask, SequentialQueue

__all__ = ["QueueClosedError", "QueuedTask", "SequentialQueue"]
