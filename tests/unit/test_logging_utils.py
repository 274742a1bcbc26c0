"""Tests for utils/logging.py — configure_logging, bind_chain and get_logger."""
from __future__ import annotations

import json
import logging
from decimal import Decimal

import pytest
import structlog

from unitmeter.billing.models import ChainKey
from unitmeter.core.config import MeteringConfig
from unitmeter.utils.logging import bind_chain, configure_logging, get_logger


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


def test_configure_logging_defaults_do_not_raise() -> None:
    configure_logging()
    assert logging.getLogger().level == logging.INFO


def test_configure_logging_sets_root_level_debug() -> None:
    configure_logging(MeteringConfig(log_level="DEBUG", json_logs=False))
    assert logging.getLogger().level == logging.DEBUG


def test_configure_logging_sets_root_level_error() -> None:
    configure_logging(MeteringConfig(log_level="ERROR"))
    assert logging.getLogger().level == logging.ERROR


def test_configure_logging_installs_single_handler() -> None:
    configure_logging()
    configure_logging()
    assert len(logging.getLogger().handlers) == 1


def test_json_output_keeps_decimal_digits(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(MeteringConfig(log_level="INFO", json_logs=True))
    get_logger("unitmeter.billing.engine").info("period_aggregated", aggregation=Decimal("1.67742"))

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "period_aggregated"
    assert record["aggregation"] == "1.67742"


def test_filtered_level_is_silent(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(MeteringConfig(log_level="WARNING", json_logs=True))
    get_logger("unitmeter.billing.incremental").debug("incremental_event_applied")
    assert capsys.readouterr().out == ""


# ---------------------------------------------------------------------------
# bind_chain
# ---------------------------------------------------------------------------


def test_bind_chain_binds_and_unbinds() -> None:
    chain = ChainKey(external_subscription_id="sub_1", metric_code="seats", group_id="eu")

    with bind_chain(chain, transaction_id="tx_1"):
        bound = structlog.contextvars.get_contextvars()
        assert bound["subscription"] == "sub_1"
        assert bound["metric"] == "seats"
        assert bound["group"] == "eu"
        assert bound["transaction_id"] == "tx_1"

    assert "subscription" not in structlog.contextvars.get_contextvars()


def test_bound_chain_appears_in_output(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(MeteringConfig(json_logs=True))
    chain = ChainKey(external_subscription_id="sub_1", metric_code="seats")

    with bind_chain(chain):
        get_logger("unitmeter.billing.service").info("pay_in_advance_event_processed")

    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert record["subscription"] == "sub_1"
    assert record["metric"] == "seats"


# ---------------------------------------------------------------------------
# get_logger
# ---------------------------------------------------------------------------


def test_get_logger_returns_bound_logger_type() -> None:
    logger = get_logger("test.logging")
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
