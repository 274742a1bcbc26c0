"""Tests for billing/proration.py — fractions and ceiling rounding."""
from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

import pytest

from unitmeter.billing.proration import fraction, prorate, prorated_total, round_up
from unitmeter.core.exceptions import ProrationError


# ---------------------------------------------------------------------------
# fraction
# ---------------------------------------------------------------------------


def test_fraction_is_exact() -> None:
    assert fraction(21, 31) == Fraction(21, 31)


def test_fraction_full_period_is_one() -> None:
    assert fraction(31, 31) == 1


def test_fraction_zero_days() -> None:
    assert fraction(0, 31) == 0


def test_fraction_rejects_non_positive_period() -> None:
    with pytest.raises(ProrationError) as exc_info:
        fraction(1, 0)
    assert exc_info.value.code == "invalid_fraction"


def test_fraction_rejects_more_days_than_period() -> None:
    with pytest.raises(ProrationError):
        fraction(32, 31)


def test_fraction_rejects_negative_days() -> None:
    with pytest.raises(ProrationError):
        fraction(-1, 31)


# ---------------------------------------------------------------------------
# round_up
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (21, "0.67742"),
        (16, "0.51613"),
        (8, "0.25807"),
        (29, "0.93549"),
        (1, "0.03226"),
    ],
)
def test_round_up_known_values(days: int, expected: str) -> None:
    assert round_up(Fraction(days, 31)) == Decimal(expected)


def test_round_up_never_below_and_within_one_step() -> None:
    step = Fraction(1, 10**5)
    for numerator in range(0, 366):
        value = Fraction(numerator, 365)
        rounded = Fraction(round_up(value))
        assert rounded >= value
        assert rounded - value < step


def test_round_up_keeps_exact_values() -> None:
    assert round_up(Fraction(1, 4)) == Decimal("0.25")
    assert round_up(1) == Decimal(1)


def test_round_up_accepts_decimal() -> None:
    assert round_up(Decimal("0.123451")) == Decimal("0.12346")


def test_round_up_custom_precision() -> None:
    assert round_up(Fraction(1, 3), precision=2) == Decimal("0.34")


# ---------------------------------------------------------------------------
# prorated_total / prorate
# ---------------------------------------------------------------------------


def test_prorated_total_rounds_once_after_summing() -> None:
    # Rounding each third up first would give 1.00002.
    thirds = [Fraction(1, 3)] * 3
    assert prorated_total(thirds) == Decimal(1)


def test_prorated_total_of_nothing_is_zero() -> None:
    assert prorated_total([]) == 0


def test_prorate_single_unit() -> None:
    assert prorate(21, 31) == Decimal("0.67742")
