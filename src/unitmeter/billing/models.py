"""Billing data models — quantified events, subscriptions, periods, chain state."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from unitmeter.core.constants import (
    BillingInterval,
    BillingTime,
    SubscriptionStatus,
)

_MICROSECONDS_PER_DAY = Decimal(86_400_000_000)


def _as_utc_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuantifiedEvent(BaseModel):
    """A unit's lifetime: opened by an "add" event, closed by a "remove" event."""

    unique_id: str
    added_at: datetime
    removed_at: datetime | None = None
    external_subscription_id: str = ""
    metric_code: str = ""
    group_id: str | None = None

    @field_validator("added_at", "removed_at")
    @classmethod
    def ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc_aware(value)

    @model_validator(mode="after")
    def check_bounds(self) -> QuantifiedEvent:
        if self.removed_at is not None and self.removed_at < self.added_at:
            raise ValueError("removed_at must not be before added_at")
        return self

    def is_active_at(self, instant: datetime) -> bool:
        """Whether the unit is open at *instant* (both bounds inclusive)."""
        return self.added_at <= instant and (
            self.removed_at is None or self.removed_at >= instant
        )


class Subscription(BaseModel):
    """Lifecycle facts of a subscription, read-only to the aggregation core."""

    external_id: str
    started_at: datetime
    subscription_at: datetime
    terminated_at: datetime | None = None
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    billing_time: BillingTime = BillingTime.ANNIVERSARY
    interval: BillingInterval = BillingInterval.MONTHLY
    pay_in_advance: bool = False
    previous_subscription_id: str | None = None
    timezone: str = "UTC"

    @field_validator("started_at", "subscription_at", "terminated_at")
    @classmethod
    def ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc_aware(value)

    @property
    def is_terminated(self) -> bool:
        return self.status == SubscriptionStatus.TERMINATED or self.terminated_at is not None


class Period(BaseModel):
    """The effective window of one aggregation call.

    ``from_datetime`` and ``to_datetime`` are both inclusive.  ``billing_days``
    is the length of the whole billing period the window belongs to and is
    the proration denominator; ``duration`` is the window itself.
    """

    from_datetime: datetime
    to_datetime: datetime
    billing_days: int = Field(ge=1)
    timezone: str = "UTC"

    @field_validator("from_datetime", "to_datetime")
    @classmethod
    def ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc_aware(value)

    @property
    def duration(self) -> Decimal:
        """Elapsed time between the bounds, in fractional days."""
        elapsed = (self.to_datetime - self.from_datetime) // timedelta(microseconds=1)
        return Decimal(elapsed) / _MICROSECONDS_PER_DAY


class ChainKey(BaseModel):
    """Identity of a (subscription, metric, group) event chain."""

    external_subscription_id: str
    metric_code: str
    group_id: str | None = None

    model_config = {"frozen": True}


class ChainState(BaseModel):
    """Running peak-tracking state carried from one chain event to the next."""

    current_aggregation: int = Field(default=0, ge=0)
    max_aggregation: int = Field(default=0, ge=0)
    max_aggregation_with_proration: Decimal = Field(default=Decimal(0), ge=0)

    model_config = {"frozen": True}

    def to_metadata(self) -> dict[str, str]:
        """Serialise to the string mapping stored on processed events."""
        return {
            "current_aggregation": str(self.current_aggregation),
            "max_aggregation": str(self.max_aggregation),
            "max_aggregation_with_proration": str(self.max_aggregation_with_proration),
        }

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, Any] | None) -> ChainState:
        """Parse event metadata; missing keys fall back to zero."""
        if not metadata:
            return cls()
        return cls(
            current_aggregation=int(Decimal(str(metadata.get("current_aggregation", 0)))),
            max_aggregation=int(Decimal(str(metadata.get("max_aggregation", 0)))),
            max_aggregation_with_proration=Decimal(
                str(metadata.get("max_aggregation_with_proration", 0))
            ),
        )


class IncomingEvent(BaseModel):
    """A freshly ingested event for a pay-in-advance chain."""

    transaction_id: str = Field(default_factory=lambda: uuid4().hex)
    external_subscription_id: str = ""
    metric_code: str = ""
    group_id: str | None = None
    timestamp: datetime
    properties: dict[str, Any] = Field(default_factory=dict)
    prior_metadata: ChainState | None = None

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc_aware(value)

    @property
    def chain(self) -> ChainKey:
        return ChainKey(
            external_subscription_id=self.external_subscription_id,
            metric_code=self.metric_code,
            group_id=self.group_id,
        )


class AggregationOptions(BaseModel):
    is_pay_in_advance: bool = False
    is_current_usage: bool = False


class AggregationRequest(BaseModel):
    """One (subscription, metric, group, window) aggregation to compute."""

    external_subscription_id: str
    metric_code: str
    group_id: str | None = None
    from_datetime: datetime
    to_datetime: datetime
    options: AggregationOptions = Field(default_factory=AggregationOptions)

    @field_validator("from_datetime", "to_datetime")
    @classmethod
    def ensure_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc_aware(value)


class AggregationResult(BaseModel):
    aggregation: Decimal = Decimal(0)
    pay_in_advance_aggregation: Decimal = Decimal(0)
    current_usage_units: int = Field(default=0, ge=0)
    units_applied: int = Field(default=0, ge=0, le=1)
    full_units_number: int = Field(default=0, ge=0)
    count: Decimal = Decimal(0)
    options: AggregationOptions = Field(default_factory=AggregationOptions)
    chain_state: ChainState | None = None
    """State after an incremental step, to be persisted on the processed event."""


class DayUsage(BaseModel):
    day: date
    units: int = Field(ge=0)


class PerDayAggregation(BaseModel):
    """Active unit count for each calendar day of a period."""

    days: list[DayUsage] = Field(default_factory=list)

    @property
    def peak(self) -> int:
        return max((d.units for d in self.days), default=0)

    @property
    def unit_days(self) -> int:
        """Sum of active units over all days."""
        return sum(d.units for d in self.days)
