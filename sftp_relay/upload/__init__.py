"""Upload pipeline: path templates, body formats, and the queued coordinator."""

from sftp_relay.upload.coordinator import UploadCoordinator, UploadError, UploadResult, WebhookEvent
from sftp_relay.upload.formatting import FORMATS, format_body
from sftp_relay.upload.paths import MACROS, build_path, format_datetime

__all__ = [
    "FORMATS",
    "MACROS",
    "UploadCoordinator",
    "UploadError",
    "UploadResult",
    "WebhookEvent",
    "build_path",
    "format_body",
    "format_datetime",
]
