"""Effective billing windows and billing-period lengths."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dateutil.relativedelta import relativedelta

from unitmeter.billing.models import Period, Subscription
from unitmeter.core.constants import BillingInterval, BillingTime
from unitmeter.core.exceptions import ConfigurationError, InvalidRangeError

logger = structlog.get_logger(__name__)

_INTERVAL_DELTAS: dict[BillingInterval, relativedelta] = {
    BillingInterval.WEEKLY: relativedelta(weeks=1),
    BillingInterval.MONTHLY: relativedelta(months=1),
    BillingInterval.QUARTERLY: relativedelta(months=3),
    BillingInterval.YEARLY: relativedelta(years=1),
}

# Calendar periods start on January 1st, weeks on Mondays.
_CALENDAR_ANCHOR = date(2000, 1, 1)
_CALENDAR_WEEK_ANCHOR = date(2000, 1, 3)


@lru_cache(maxsize=128)
def resolve_zone(name: str) -> tzinfo:
    """Return the tzinfo for an IANA zone name."""
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timezone: {name}", details={"timezone": name}) from exc


def local_date(instant: datetime, zone: str) -> date:
    return instant.astimezone(resolve_zone(zone)).date()


def calendar_days(start: datetime, end: datetime, zone: str = "UTC") -> int:
    """Number of calendar days touched by ``[start, end]``, both ends included.

    Returns 0 when *end* falls on an earlier day than *start*.
    """
    days = (local_date(end, zone) - local_date(start, zone)).days + 1
    return max(days, 0)


class PeriodCalculator:
    """Clips requested windows against a subscription's lifecycle.

    Args:
        default_timezone: Zone used when a subscription does not carry one.
    """

    def __init__(self, default_timezone: str = "UTC") -> None:
        self._default_timezone = default_timezone

    def _zone(self, subscription: Subscription) -> str:
        return subscription.timezone or self._default_timezone

    def effective_period(
        self,
        subscription: Subscription,
        from_datetime: datetime,
        to_datetime: datetime,
        successor: Subscription | None = None,
    ) -> Period:
        """Clip ``[from_datetime, to_datetime]`` to the subscription's active life.

        The start is moved up to ``started_at``; the end is pulled back to
        ``terminated_at`` or to the start of the upgrade that superseded the
        subscription, whichever comes first.

        Raises:
            InvalidRangeError: *to_datetime* is before *from_datetime*, or the
                subscription was not active at all inside the window.
        """
        if to_datetime < from_datetime:
            raise InvalidRangeError(
                details={"from": from_datetime.isoformat(), "to": to_datetime.isoformat()}
            )

        start = max(from_datetime, subscription.started_at)
        end = to_datetime
        if subscription.terminated_at is not None and subscription.terminated_at < end:
            end = subscription.terminated_at
        if successor is not None and successor.started_at < end:
            end = successor.started_at

        if end < start:
            raise InvalidRangeError(
                "Subscription is not active in the requested window",
                details={
                    "subscription": subscription.external_id,
                    "from": start.isoformat(),
                    "to": end.isoformat(),
                },
            )

        zone = self._zone(subscription)
        period = Period(
            from_datetime=start,
            to_datetime=end,
            billing_days=self.window_billing_days(subscription, from_datetime, to_datetime),
            timezone=zone,
        )
        logger.debug(
            "effective_period_computed",
            subscription=subscription.external_id,
            from_datetime=start.isoformat(),
            to_datetime=end.isoformat(),
            billing_days=period.billing_days,
        )
        return period

    def billing_bounds(self, subscription: Subscription, at: datetime) -> tuple[date, date]:
        """First and last day of the billing period containing *at*."""
        day = local_date(at, self._zone(subscription))

        delta = _INTERVAL_DELTAS[subscription.interval]

        if subscription.billing_time == BillingTime.CALENDAR:
            if subscription.interval == BillingInterval.WEEKLY:
                anchor = _CALENDAR_WEEK_ANCHOR
            else:
                anchor = _CALENDAR_ANCHOR
        else:
            anchor = local_date(subscription.subscription_at, self._zone(subscription))

        # Each boundary is taken from the anchor, so a 31st anchor comes back
        # to the 31st after a short month.
        if subscription.interval == BillingInterval.WEEKLY:
            index = (day - anchor).days // 7
        else:
            elapsed = relativedelta(day, anchor)
            index = (elapsed.years * 12 + elapsed.months) // (delta.years * 12 + delta.months)
        while anchor + delta * index > day:
            index -= 1
        while anchor + delta * (index + 1) <= day:
            index += 1

        start = anchor + delta * index
        end = anchor + delta * (index + 1) - timedelta(days=1)
        return start, end

    def billing_days(self, subscription: Subscription, at: datetime) -> int:
        """Length in days of the billing period containing *at*."""
        start, end = self.billing_bounds(subscription, at)
        return (end - start).days + 1

    def window_billing_days(
        self, subscription: Subscription, from_datetime: datetime, to_datetime: datetime
    ) -> int:
        """Days from the start of the billing period containing *from_datetime*
        to the end of the one containing *to_datetime*.

        A window inside one billing period gets that period's length; a window
        crossing period boundaries is prorated against every period it touches.
        """
        start, _ = self.billing_bounds(subscription, from_datetime)
        _, end = self.billing_bounds(subscription, to_datetime)
        return (end - start).days + 1
