"""Tests for MeteringConfig and MeteringConfig.from_env()."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from unitmeter.core.config import MeteringConfig

_ENV_VARS = (
    "UNITMETER_UNIQUE_ID_FIELD",
    "UNITMETER_PRECISION",
    "UNITMETER_TIMEZONE",
    "UNITMETER_MAX_CONCURRENCY",
    "UNITMETER_MAX_RETRIES",
    "UNITMETER_FETCH_TIMEOUT",
    "UNITMETER_LOG_LEVEL",
    "UNITMETER_JSON_LOGS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------


def test_defaults() -> None:
    config = MeteringConfig()
    assert config.unique_id_field == "unique_id"
    assert config.precision == 5
    assert config.default_timezone == "UTC"
    assert config.fetch_timeout is None
    assert config.log_level == "INFO"


def test_precision_bounds() -> None:
    with pytest.raises(ValidationError):
        MeteringConfig(precision=0)
    with pytest.raises(ValidationError):
        MeteringConfig(precision=11)


def test_empty_unique_id_field_rejected() -> None:
    with pytest.raises(ValidationError):
        MeteringConfig(unique_id_field="")


# ---------------------------------------------------------------------------
# from_env()
# ---------------------------------------------------------------------------


def test_from_env_defaults_when_not_set() -> None:
    assert MeteringConfig.from_env() == MeteringConfig()


def test_from_env_reads_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNITMETER_UNIQUE_ID_FIELD", "seat_id")
    monkeypatch.setenv("UNITMETER_PRECISION", "6")
    monkeypatch.setenv("UNITMETER_TIMEZONE", "Europe/Paris")
    monkeypatch.setenv("UNITMETER_MAX_CONCURRENCY", "4")
    monkeypatch.setenv("UNITMETER_MAX_RETRIES", "5")
    monkeypatch.setenv("UNITMETER_FETCH_TIMEOUT", "2.5")
    monkeypatch.setenv("UNITMETER_LOG_LEVEL", "debug")

    config = MeteringConfig.from_env()
    assert config.unique_id_field == "seat_id"
    assert config.precision == 6
    assert config.default_timezone == "Europe/Paris"
    assert config.max_concurrency == 4
    assert config.max_retries == 5
    assert config.fetch_timeout == 2.5
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("true", True), ("no", False)])
def test_from_env_json_logs(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("UNITMETER_JSON_LOGS", raw)
    assert MeteringConfig.from_env().json_logs is expected


def test_from_env_empty_values_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNITMETER_PRECISION", "")
    assert MeteringConfig.from_env().precision == 5


def test_from_env_invalid_value_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UNITMETER_MAX_RETRIES", "99")
    with pytest.raises(ValidationError):
        MeteringConfig.from_env()
