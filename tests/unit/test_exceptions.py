"""Tests for core/exceptions.py — all exception subclasses."""
from __future__ import annotations

import pytest

from unitmeter.core.exceptions import (
    AggregationError,
    ChainStateError,
    ConfigurationError,
    EmptyPeriodError,
    InvalidRangeError,
    ProrationError,
    SourceError,
    StaleChainStateError,
    SubscriptionNotFoundError,
    UnitMeterError,
)


# ---------------------------------------------------------------------------
# UnitMeterError — base class
# ---------------------------------------------------------------------------


def test_base_exception_message() -> None:
    exc = UnitMeterError("something went wrong")
    assert str(exc) == "something went wrong"


def test_base_exception_code_default_none() -> None:
    exc = UnitMeterError("msg")
    assert exc.code is None


def test_base_exception_details_default_empty_dict() -> None:
    exc = UnitMeterError("msg", details=None)
    assert exc.details == {}


def test_base_exception_with_code_and_details() -> None:
    exc = UnitMeterError("msg", code="ERR_001", details={"key": "value"})
    assert exc.code == "ERR_001"
    assert exc.details == {"key": "value"}


def test_base_exception_not_retryable() -> None:
    assert UnitMeterError("msg").is_retryable is False


# ---------------------------------------------------------------------------
# Aggregation errors
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("exc_type", "code"),
    [
        (InvalidRangeError, "invalid_range"),
        (EmptyPeriodError, "empty_period"),
        (ProrationError, "invalid_fraction"),
    ],
)
def test_aggregation_errors_have_default_codes(exc_type: type[AggregationError], code: str) -> None:
    exc = exc_type()
    assert isinstance(exc, AggregationError)
    assert isinstance(exc, UnitMeterError)
    assert exc.code == code
    assert exc.is_retryable is False
    assert str(exc)


def test_invalid_range_error_carries_details() -> None:
    exc = InvalidRangeError(details={"from": "2022-08-01", "to": "2022-07-01"})
    assert exc.details["from"] == "2022-08-01"


def test_can_catch_as_aggregation_error() -> None:
    with pytest.raises(AggregationError):
        raise EmptyPeriodError()


# ---------------------------------------------------------------------------
# Chain and source errors
# ---------------------------------------------------------------------------


def test_stale_chain_state_is_retryable() -> None:
    exc = StaleChainStateError()
    assert isinstance(exc, ChainStateError)
    assert exc.code == "stale_chain_state"
    assert exc.is_retryable is True


def test_subscription_not_found_is_source_error() -> None:
    exc = SubscriptionNotFoundError("missing", code="subscription_not_found")
    assert isinstance(exc, SourceError)
    assert exc.code == "subscription_not_found"


def test_configuration_error_can_be_raised() -> None:
    with pytest.raises(ConfigurationError, match="bad timezone"):
        raise ConfigurationError("bad timezone")
