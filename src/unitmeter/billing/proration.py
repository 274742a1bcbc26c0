"""
Proration arithmetic shared by every aggregation path.

Notes:
- Fractions stay exact (:class:`fractions.Fraction`) until they are rounded, so
  summing many units never accumulates binary or decimal drift.
- Rounding always goes toward positive infinity: a prorated quantity is never
  under-billed.
- Periodic totals are summed first and rounded once; the incremental path
  rounds each single-unit contribution on its own.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import Decimal
from fractions import Fraction

from unitmeter.core.constants import DEFAULT_PRECISION
from unitmeter.core.exceptions import ProrationError

Number = int | Decimal | Fraction


def fraction(active_days: Number, period_days: Number) -> Fraction:
    """Return ``active_days / period_days`` as an exact fraction in ``[0, 1]``."""
    if period_days <= 0:
        raise ProrationError(
            "Period length must be positive",
            details={"period_days": str(period_days)},
        )
    value = Fraction(active_days) / Fraction(period_days)
    if value < 0 or value > 1:
        raise ProrationError(
            "Active days exceed the period",
            details={"active_days": str(active_days), "period_days": str(period_days)},
        )
    return value


def round_up(value: Number, precision: int = DEFAULT_PRECISION) -> Decimal:
    """Round *value* up to *precision* decimal places (``ceil(x * 10^p) / 10^p``)."""
    scaled = math.ceil(Fraction(value) * 10**precision)
    return Decimal(scaled).scaleb(-precision)


def prorated_total(fractions: Iterable[Fraction], precision: int = DEFAULT_PRECISION) -> Decimal:
    """Sum *fractions* exactly, then round the total up once."""
    return round_up(sum(fractions, Fraction(0)), precision)


def prorate(active_days: Number, period_days: Number, precision: int = DEFAULT_PRECISION) -> Decimal:
    """Rounded-up proration of a single unit."""
    return round_up(fraction(active_days, period_days), precision)
