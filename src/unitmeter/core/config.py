from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field

from unitmeter.core.constants import DEFAULT_PRECISION, DEFAULT_UNIQUE_ID_FIELD


class MeteringConfig(BaseModel):
    unique_id_field: str = Field(default=DEFAULT_UNIQUE_ID_FIELD, min_length=1)
    precision: int = Field(default=DEFAULT_PRECISION, ge=1, le=10)
    default_timezone: str = "UTC"
    max_concurrency: int = Field(default=16, ge=1, le=1024)
    max_retries: int = Field(default=3, ge=0, le=10)
    retry_backoff_base: float = Field(default=0.05, ge=0.0)
    fetch_timeout: float | None = Field(default=None, gt=0)
    """Deadline in seconds for a single fetch from an event or subscription source."""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_logs: bool = True

    @classmethod
    def from_env(cls) -> MeteringConfig:
        """Create a :class:`MeteringConfig` from ``UNITMETER_*`` environment variables.

        Reads the following env vars (all optional):

        * ``UNITMETER_UNIQUE_ID_FIELD`` → ``unique_id_field``
        * ``UNITMETER_PRECISION`` → ``precision`` (integer, 1–10)
        * ``UNITMETER_TIMEZONE`` → ``default_timezone``
        * ``UNITMETER_MAX_CONCURRENCY`` → ``max_concurrency``
        * ``UNITMETER_MAX_RETRIES`` → ``max_retries`` (integer, 0–10)
        * ``UNITMETER_FETCH_TIMEOUT`` → ``fetch_timeout`` (seconds)
        * ``UNITMETER_LOG_LEVEL`` → ``log_level`` (``DEBUG``, ``INFO``, ``WARNING``, ``ERROR``)
        * ``UNITMETER_JSON_LOGS`` → ``json_logs`` (``1``/``true``/``yes`` enable it)

        Any variable that is not set or is empty is left at its default value.

        Returns:
            A :class:`MeteringConfig` populated from the environment.
        """
        kwargs: dict[str, Any] = {}

        unique_id_field = os.environ.get("UNITMETER_UNIQUE_ID_FIELD")
        if unique_id_field:
            kwargs["unique_id_field"] = unique_id_field

        precision = os.environ.get("UNITMETER_PRECISION")
        if precision:
            kwargs["precision"] = int(precision)

        timezone_name = os.environ.get("UNITMETER_TIMEZONE")
        if timezone_name:
            kwargs["default_timezone"] = timezone_name

        max_concurrency = os.environ.get("UNITMETER_MAX_CONCURRENCY")
        if max_concurrency:
            kwargs["max_concurrency"] = int(max_concurrency)

        max_retries = os.environ.get("UNITMETER_MAX_RETRIES")
        if max_retries:
            kwargs["max_retries"] = int(max_retries)

        fetch_timeout = os.environ.get("UNITMETER_FETCH_TIMEOUT")
        if fetch_timeout:
            kwargs["fetch_timeout"] = float(fetch_timeout)

        log_level = os.environ.get("UNITMETER_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level.upper()

        json_logs = os.environ.get("UNITMETER_JSON_LOGS")
        if json_logs:
            kwargs["json_logs"] = json_logs.strip().lower() in ("1", "true", "yes")

        return cls(**kwargs)
