"""Shared test fixtures.

The default billing period mirrors a monthly anniversary subscription started
on 2022-06-09: its July period runs from 2022-07-09 to 2022-08-08 (31 days).
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from unitmeter.billing.models import Period, QuantifiedEvent, Subscription
from unitmeter.billing.period import PeriodCalculator

UnitFactory = Callable[..., QuantifiedEvent]


@pytest.fixture
def from_datetime() -> datetime:
    return datetime(2022, 7, 9, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def to_datetime() -> datetime:
    return datetime(2022, 8, 8, 23, 59, 59, tzinfo=timezone.utc)


@pytest.fixture
def subscription() -> Subscription:
    subscription_at = datetime(2022, 6, 9, tzinfo=timezone.utc)
    return Subscription(
        external_id="sub_1",
        started_at=subscription_at,
        subscription_at=subscription_at,
    )


@pytest.fixture
def period(subscription: Subscription, from_datetime: datetime, to_datetime: datetime) -> Period:
    return PeriodCalculator().effective_period(subscription, from_datetime, to_datetime)


@pytest.fixture
def make_unit(from_datetime: datetime) -> UnitFactory:
    """Build a unit of ``sub_1``/``seats``; by default opened a month before the period."""

    def _make(
        unique_id: str = "u1",
        added_at: datetime | None = None,
        removed_at: datetime | None = None,
        metric_code: str = "seats",
    ) -> QuantifiedEvent:
        return QuantifiedEvent(
            unique_id=unique_id,
            added_at=added_at if added_at is not None else from_datetime - timedelta(days=30),
            removed_at=removed_at,
            external_subscription_id="sub_1",
            metric_code=metric_code,
        )

    return _make
