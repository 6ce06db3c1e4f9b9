from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING

import pytest

from depflow.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_github_config,
    get_reconciliation_settings,
    require_env_vars,
)
from depflow.config.env import optional_float_env
from depflow.config.github import DEFAULT_AUTOMATION_LOGIN, DEFAULT_GITHUB_API_URL, DEFAULT_MANIFEST_PATH
from depflow.config.logging import HTTP_LOGGERS, LOG_LEVEL_ENV, configure_logging

if TYPE_CHECKING:
    from collections.abc import Iterator


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["EXAMPLE_VAR", "MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)
    assert exc.value.variables == ("BLANK_VAR", "MISSING_VAR")


def test_optional_float_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_FLOAT", raising=False)
    assert optional_float_env("EXAMPLE_FLOAT", 2.5) == 2.5

    monkeypatch.setenv("EXAMPLE_FLOAT", "7")
    assert optional_float_env("EXAMPLE_FLOAT", 2.5) == 7.0

    monkeypatch.setenv("EXAMPLE_FLOAT", "seven")
    with pytest.raises(ConfigurationError):
        optional_float_env("EXAMPLE_FLOAT", 2.5)


def test_github_config_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    with pytest.raises(MissingConfigurationError):
        get_github_config()


def test_github_config_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("DEPFLOW_DATA_DIR", str(tmp_path))
    for name in ("GITHUB_API_URL", "DEPFLOW_AUTOMATION_LOGIN", "DEPFLOW_MANIFEST_PATH"):
        monkeypatch.delenv(name, raising=False)

    config = get_github_config()

    assert config.automation_login == DEFAULT_AUTOMATION_LOGIN
    assert config.manifest_path == DEFAULT_MANIFEST_PATH
    assert config.resilience.base_url == DEFAULT_GITHUB_API_URL
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["Authorization"] == "Bearer secret"
    assert config.resilience.cache is None
    assert config.snapshot_resilience.cache is not None
    assert config.snapshot_resilience.cache.sqlite_path is not None


def test_github_config_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("DEPFLOW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GITHUB_API_URL", "https://github.example.com/api/v3")
    monkeypatch.setenv("DEPFLOW_AUTOMATION_LOGIN", "flow-bot")
    monkeypatch.setenv("DEPFLOW_MANIFEST_PATH", "build/Versions.xml")

    config = get_github_config()

    assert config.resilience.base_url == "https://github.example.com/api/v3"
    assert config.automation_login == "flow-bot"
    assert config.manifest_path == "build/Versions.xml"


def test_reconciliation_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DEPFLOW_REMINDER_MINUTES", raising=False)
    assert get_reconciliation_settings().reminder_interval == timedelta(minutes=5)

    monkeypatch.setenv("DEPFLOW_REMINDER_MINUTES", "0.5")
    assert get_reconciliation_settings().reminder_interval == timedelta(seconds=30)

    monkeypatch.setenv("DEPFLOW_REMINDER_MINUTES", "0")
    with pytest.raises(ConfigurationError):
        get_reconciliation_settings()


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    http_levels = {name: logging.getLogger(name).level for name in HTTP_LOGGERS}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, http_level in http_levels.items():
        logging.getLogger(name).setLevel(http_level)


@pytest.mark.usefixtures("restore_logging")
def test_configure_logging_quiets_http_clients(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)

    configure_logging(force=True)

    assert logging.getLogger().level == logging.INFO
    assert all(logging.getLogger(name).level == logging.WARNING for name in HTTP_LOGGERS)


@pytest.mark.usefixtures("restore_logging")
def test_configure_logging_reads_level_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "debug")

    configure_logging(force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_configure_logging_rejects_unknown_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")

    with pytest.raises(ConfigurationError) as exc:
        configure_logging(force=True)

    assert exc.value.variables == (LOG_LEVEL_ENV,)
