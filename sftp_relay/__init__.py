"""Webhook to SFTP upload relay."""

__version__ = "0.1.0"
