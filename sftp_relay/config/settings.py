"""Relay configuration loading and validation."""

from __future__ import annotations

import codecs
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import Field, NonNegativeInt, PositiveFloat, PositiveInt
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/sftp-relay/relay.yaml"),
    Path("/etc/sftp-relay/relay.yml"),
    Path("./config/relay.yaml"),
    Path("./config/relay.yml"),
    Path("./config/relay.json"),
)


class RelaySettings(BaseSettings):
    """Validated settings for the webhook relay."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="SFTP_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Webhook listener
    secret: str | None = Field(
        default=None,
        description="Shared secret expected verbatim in the Authorization header.",
        repr=False,
    )
    host: str = Field(default="localhost", description="Bind address for the webhook listener.")
    port: PositiveInt = Field(default=3000, description="Port for the webhook listener.")
    root_spec: str = Field(
        default="/upload/{yyyy-LL-dd-HHmmss-SSS}-{random_3}.txt",
        description="Destination path template for POST /.",
    )
    name_spec: str = Field(
        default="/upload/{name}-{yyyy-LL-dd-HHmmss-SSS}-{random_3}.txt",
        description="Destination path template for POST /{name}.",
    )

    # Body serialisation
    format: Literal["json", "jsonl", "textl"] = Field(
        default="textl",
        description="Serialisation applied to the webhook body before upload.",
    )
    final_newline: bool = Field(default=True, description="Terminate the uploaded file with a newline.")
    encoding: str = Field(default="utf-8", description="Text encoding used to build the upload buffer.")

    # SFTP connection
    sftp_host: str | None = Field(
        default=None,
        description="SFTP server host; reconnect attempts are skipped while unset.",
    )
    sftp_port: PositiveInt = Field(default=22, description="SFTP server port.")
    sftp_username: str | None = Field(default=None, description="SSH login user.")
    sftp_password: str | None = Field(default=None, description="SSH login password.", repr=False)
    sftp_private_key: Path | None = Field(
        default=None,
        description="Optional private key file used for public key authentication.",
    )
    sftp_known_hosts: Path | None = Field(
        default=None,
        description="known_hosts file used to verify the server; host keys are not checked while unset.",
    )
    connect_timeout_seconds: PositiveFloat = Field(
        default=30.0,
        description="Upper bound for the SSH connect handshake.",
    )
    transport: Literal["ssh", "memory"] = Field(
        default="ssh",
        description="Transport implementation used for uploads.",
    )

    # Reconnect timer
    task_seconds: NonNegativeInt = Field(
        default=30,
        description="Fixed delay between reconnect attempts.",
    )

    # Write stream
    file_flags: str = Field(default="w", description="Open flags for the remote write stream.")
    file_mode: int = Field(default=0o666, description="Permission bits for newly created remote files.")
    auto_close: bool = Field(
        default=True,
        description="Let the write stream close itself on completion instead of closing it explicitly.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the relay process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"Unknown text encoding: {value}") from exc
        return value

    @field_validator("file_mode", mode="before")
    @classmethod
    def _parse_file_mode(cls, value: Any) -> Any:
        # Octal strings such as "0644" or "0o644" are accepted from env/config files.
        if isinstance(value, str):
            return int(value, 8)
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @property
    def sftp_configured(self) -> bool:
        return bool(self.sftp_host)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[RelaySettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._file_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def _file_settings_source(settings_cls: type[RelaySettings] | None = None) -> Dict[str, Any]:
        for path in RelaySettings._resolve_candidate_paths():
            data = RelaySettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("SFTP_RELAY_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read relay config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid relay config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Relay config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> RelaySettings:
    """Return memoized relay settings."""

    return RelaySettings()
