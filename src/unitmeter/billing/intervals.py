"""Per-unit active intervals inside a period."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from unitmeter.billing.models import DayUsage, PerDayAggregation, Period, QuantifiedEvent
from unitmeter.billing.period import calendar_days, local_date


class UnitInterval(BaseModel):
    """The part of a unit's lifetime that falls inside a period."""

    unique_id: str
    start: datetime
    end: datetime
    active_days: int = Field(ge=1)


class UnitIntervalResolver:
    """Intersects quantified events with a period.

    Every method is order-independent: callers only count or sum the output.
    """

    def resolve(self, period: Period, events: Iterable[QuantifiedEvent]) -> list[UnitInterval]:
        """Return the active interval of each event overlapping *period*.

        Units added after the period or removed before it are dropped.
        """
        intervals: list[UnitInterval] = []
        for event in events:
            start = max(event.added_at, period.from_datetime)
            if event.removed_at is None:
                end = period.to_datetime
            else:
                end = min(event.removed_at, period.to_datetime)
            if end < start:
                continue
            intervals.append(
                UnitInterval(
                    unique_id=event.unique_id,
                    start=start,
                    end=end,
                    active_days=calendar_days(start, end, period.timezone),
                )
            )
        return intervals

    def active_days(self, period: Period, events: Iterable[QuantifiedEvent]) -> list[int]:
        return [interval.active_days for interval in self.resolve(period, events)]

    @staticmethod
    def active_at(events: Iterable[QuantifiedEvent], instant: datetime) -> list[QuantifiedEvent]:
        return [e for e in events if e.is_active_at(instant)]

    def started_before(self, period: Period, events: Iterable[QuantifiedEvent]) -> list[QuantifiedEvent]:
        """Units already open when the period starts."""
        return self.active_at(events, period.from_datetime)

    def overlapping(self, period: Period, events: Iterable[QuantifiedEvent]) -> list[QuantifiedEvent]:
        return [
            e
            for e in events
            if e.added_at <= period.to_datetime
            and (e.removed_at is None or e.removed_at >= period.from_datetime)
        ]

    def distinct_units(self, period: Period, events: Iterable[QuantifiedEvent]) -> int:
        """Number of distinct unique ids active at some point of *period*."""
        return len({e.unique_id for e in self.overlapping(period, events)})

    def per_day_counts(self, period: Period, events: Iterable[QuantifiedEvent]) -> PerDayAggregation:
        """Active unit count for every calendar day of *period*.

        A unit counts on each day its interval touches, so a unit removed in
        the morning and one added in the afternoon both count that day.
        """
        first = local_date(period.from_datetime, period.timezone)
        last = local_date(period.to_datetime, period.timezone)
        counts = {first + timedelta(days=i): 0 for i in range((last - first).days + 1)}

        for interval in self.resolve(period, events):
            day = local_date(interval.start, period.timezone)
            for _ in range(interval.active_days):
                counts[day] += 1
                day += timedelta(days=1)

        return PerDayAggregation(
            days=[DayUsage(day=day, units=units) for day, units in sorted(counts.items())]
        )
