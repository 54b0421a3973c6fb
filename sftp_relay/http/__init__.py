"""HTTP webhook receiver."""

from sftp_relay.http.app import create_app

__all__ = ["create_app"]
