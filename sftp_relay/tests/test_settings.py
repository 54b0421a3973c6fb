import pytest

from sftp_relay.bootstrap import parse_args, resolve_settings
from sftp_relay.config import RelaySettings, get_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ("SFTP_RELAY_CONFIG_FILE", "SFTP_RELAY_SFTP_HOST", "SFTP_RELAY_TASK_SECONDS", "SFTP_RELAY_SECRET"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = RelaySettings()

    assert settings.port == 3000
    assert settings.format == "textl"
    assert settings.final_newline is True
    assert settings.task_seconds == 30
    assert settings.file_flags == "w"
    assert settings.file_mode == 0o666
    assert settings.root_spec == "/upload/{yyyy-LL-dd-HHmmss-SSS}-{random_3}.txt"
    assert not settings.sftp_configured


def test_yaml_config_file_and_env_precedence(monkeypatch, tmp_path):
    config = tmp_path / "relay.yaml"
    config.write_text(
        "sftp_host: files.example\nsftp_port: 2222\nfile_mode: '0640'\ntask_seconds: 10\nlog_level: debug\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SFTP_RELAY_CONFIG_FILE", str(config))
    monkeypatch.setenv("SFTP_RELAY_TASK_SECONDS", "3")

    settings = RelaySettings()

    assert settings.sftp_host == "files.example"
    assert settings.sftp_port == 2222
    assert settings.file_mode == 0o640
    assert settings.task_seconds == 3
    assert settings.log_level == "DEBUG"
    assert settings.config_path == config
    assert settings.sftp_configured


def test_invalid_config_file_is_rejected(monkeypatch, tmp_path):
    config = tmp_path / "relay.json"
    config.write_text("[1, 2]", encoding="utf-8")
    monkeypatch.setenv("SFTP_RELAY_CONFIG_FILE", str(config))

    with pytest.raises(ValueError, match="mapping"):
        RelaySettings()


def test_password_hidden_from_repr():
    settings = RelaySettings(sftp_password="hunter2", secret="topsecret")
    assert "hunter2" not in repr(settings)
    assert "topsecret" not in repr(settings)


def test_cli_overrides_settings():
    args = parse_args(["--port", "8081", "--sftp-host", "sftp.local", "--log-level", "debug", "--format", "json"])

    settings = resolve_settings(args)

    assert settings.port == 8081
    assert settings.sftp_host == "sftp.local"
    assert settings.log_level == "DEBUG"
    assert settings.format == "json"


def test_unknown_encoding_is_rejected():
    with pytest.raises(ValueError, match="Unknown text encoding"):
        RelaySettings(encoding="no-such-codec")


def test_cli_covers_paths_encoding_and_config_file(monkeypatch, tmp_path):
    # Registered with monkeypatch so the value written by --config is restored.
    monkeypatch.setenv("SFTP_RELAY_CONFIG_FILE", "")
    config = tmp_path / "cli.yaml"
    config.write_text("sftp_host: from-file.example\nfinal_newline: true\n", encoding="utf-8")

    args = parse_args(
        [
            "--config",
            str(config),
            "--root-spec",
            "/in/{random_2}.txt",
            "--name-spec",
            "/in/{name}.txt",
            "--encoding",
            "latin-1",
            "--no-final-newline",
            "--sftp-password",
            "pw",
        ]
    )
    settings = resolve_settings(args)

    assert settings.sftp_host == "from-file.example"
    assert settings.config_path == config
    assert settings.root_spec == "/in/{random_2}.txt"
    assert settings.name_spec == "/in/{name}.txt"
    assert settings.encoding == "latin-1"
    assert settings.final_newline is False
    assert settings.sftp_password == "pw"
