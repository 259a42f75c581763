"""Tests for configuration resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from dbbridge.config import ServerConfig, load_config
from dbbridge.errors import ConfigurationError, DSNResolutionError

DSN = "postgres://alice:pw@localhost:5432/app"


def _load(argv: list[str], environ: dict[str, str] | None = None, env_file: Path | None = None) -> ServerConfig:
    return load_config(argv, environ=environ or {}, env_file=env_file)


def test_defaults_apply_when_only_dsn_given() -> None:
    config = _load(["--dsn", DSN])

    assert config.dsn == DSN
    assert config.transport == "stdio"
    assert config.port == 8080
    assert config.readonly is False
    assert config.require_auth is False
    assert config.auth_token is None
    assert config.log_level == "INFO"
    assert config.source_of("dsn") == "command line argument"
    assert config.source_of("port") == "default"


def test_missing_dsn_raises_resolution_error() -> None:
    with pytest.raises(DSNResolutionError):
        _load([])


def test_cli_beats_environment_beats_dotenv(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("DSN=sqlite:///from-dotenv.db\nPORT=9000\nTRANSPORT=http\n")

    config = _load(["--port", "7000"], environ={"DSN": DSN}, env_file=env_file)

    assert config.dsn == DSN
    assert config.source_of("dsn") == "environment variable"
    assert config.port == 7000
    assert config.source_of("port") == "command line argument"
    assert config.transport == "http"
    assert config.source_of("transport") == ".env file"


def test_dotenv_does_not_mutate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DSN", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(f"DSN={DSN}\n")

    config = _load([], env_file=env_file)

    assert config.dsn == DSN
    assert "DSN" not in os.environ


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["--readonly"], True),
        (["--readonly=true"], True),
        (["--readonly", "false"], False),
        ([], False),
    ],
)
def test_readonly_flag_forms(argv: list[str], expected: bool) -> None:
    assert _load(["--dsn", DSN, *argv]).readonly is expected


def test_readonly_from_environment() -> None:
    assert _load(["--dsn", DSN], environ={"READONLY": "true"}).readonly is True


def test_invalid_values_raise_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        _load(["--dsn", DSN, "--port", "not-a-port"])
    with pytest.raises(ConfigurationError):
        _load(["--dsn", DSN, "--transport", "carrier-pigeon"])
    with pytest.raises(ConfigurationError):
        _load(["--dsn", DSN, "--port", "70000"])


def test_transport_and_log_level_are_case_insensitive() -> None:
    config = _load(["--dsn", DSN, "--transport", "HTTP", "--log-level", "debug"])

    assert config.transport == "http"
    assert config.log_level == "DEBUG"


def test_inline_token_beats_token_file(tmp_path: Path) -> None:
    token_file = tmp_path / "token"
    token_file.write_text("from-file\n")

    config = _load(
        ["--dsn", DSN, "--auth-token-file", str(token_file)],
        environ={"AUTH_TOKEN": "from-env"},
    )

    assert config.auth_token == "from-env"
    assert config.source_of("auth_token") == "environment variable"


def test_token_file_is_read_and_stripped(tmp_path: Path) -> None:
    token_file = tmp_path / "token"
    token_file.write_text("  from-file\n")

    config = _load(["--dsn", DSN, "--auth-token-file", str(token_file)])

    assert config.auth_token == "from-file"
    assert config.source_of("auth_token").startswith("file: ")


def test_unreadable_token_file_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="auth token file"):
        _load(["--dsn", DSN, "--auth-token-file", str(tmp_path / "missing")])


def test_require_auth_without_token_is_fatal() -> None:
    with pytest.raises(ConfigurationError, match="no auth token"):
        _load(["--dsn", DSN, "--require-auth"])


def test_active_modes() -> None:
    config = _load(["--dsn", DSN, "--readonly", "--require-auth", "--auth-token", "t"])

    assert config.active_modes() == ["READ-ONLY", "AUTH"]
    assert "auth_token=" not in repr(config)
