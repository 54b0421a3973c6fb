"""Command-line entrypoint that launches the webhook relay."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import uvicorn

from sftp_relay.config import RelaySettings, get_settings
from sftp_relay.http.app import create_app

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Relay authenticated webhooks to files on an SFTP server.")
    parser.add_argument("--host", default=None, help="Bind address (overrides settings/env).")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to (overrides settings/env).")
    parser.add_argument("--secret", default=None, help="Shared secret for the Authorization header.")
    parser.add_argument("--sftp-host", dest="sftp_host", default=None, help="SFTP server host.")
    parser.add_argument("--sftp-port", dest="sftp_port", type=int, default=None, help="SFTP server port.")
    parser.add_argument("--sftp-username", dest="sftp_username", default=None, help="SSH login user.")
    parser.add_argument("--sftp-password", dest="sftp_password", default=None, help="SSH login password.")
    parser.add_argument("--root-spec", dest="root_spec", default=None, help="Destination path template for POST /.")
    parser.add_argument(
        "--name-spec",
        dest="name_spec",
        default=None,
        help="Destination path template for POST /{name}.",
    )
    parser.add_argument("--encoding", default=None, help="Text encoding of uploaded files.")
    parser.add_argument(
        "--final-newline",
        dest="final_newline",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Terminate uploaded files with a newline.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML/JSON config file (overrides SFTP_RELAY_CONFIG_FILE).",
    )
    parser.add_argument(
        "--task-seconds",
        dest="task_seconds",
        type=int,
        default=None,
        help="Delay between reconnect attempts.",
    )
    parser.add_argument(
        "--format",
        choices=["json", "jsonl", "textl"],
        default=None,
        help="Serialisation applied to webhook bodies.",
    )
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default=None,
        help="Log level for relay and uvicorn output (overrides settings/env).",
    )
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> RelaySettings:
    if args.config is not None:
        os.environ["SFTP_RELAY_CONFIG_FILE"] = str(args.config)
        get_settings.cache_clear()
    settings = get_settings()
    overrides: Dict[str, Any] = {
        key: value
        for key, value in vars(args).items()
        if value is not None and key in RelaySettings.model_fields
    }
    if not overrides:
        return settings
    # Re-validate so CLI values go through the same field validators.
    return RelaySettings.model_validate(
        {**settings.model_dump(), "config_path": settings.config_path, **overrides}
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    settings = resolve_settings(args)

    root_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=root_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(root_level)

    app = create_app(settings)
    LOGGER.info("Webhook listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
