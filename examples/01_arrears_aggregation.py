# RUN: python examples/01_arrears_aggregation.py
"""Arrears aggregation — prorated unique count of seats over one billing period.

Demonstrates: InMemoryEventSource, InMemorySubscriptionSource,
MeteringService.aggregate(), current usage, and per-day counts.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from unitmeter import (
    AggregationOptions,
    AggregationRequest,
    InMemoryEventSource,
    InMemorySubscriptionSource,
    MeteringConfig,
    MeteringService,
    PeriodAggregationEngine,
    PeriodCalculator,
    QuantifiedEvent,
    Subscription,
    configure_logging,
)

FROM = datetime(2022, 7, 9, tzinfo=timezone.utc)
TO = datetime(2022, 8, 8, 23, 59, 59, tzinfo=timezone.utc)


def _seat(unique_id: str, added_at: datetime, removed_at: datetime | None = None) -> QuantifiedEvent:
    return QuantifiedEvent(
        unique_id=unique_id,
        added_at=added_at,
        removed_at=removed_at,
        external_subscription_id="sub_acme",
        metric_code="seats",
    )


async def main() -> None:
    configure_logging(MeteringConfig(log_level="WARNING", json_logs=False))

    # ------------------------------------------------------------------
    # 1. Sources: one monthly anniversary subscription and three seats
    # ------------------------------------------------------------------
    subscription = Subscription(
        external_id="sub_acme",
        started_at=datetime(2022, 6, 9, tzinfo=timezone.utc),
        subscription_at=datetime(2022, 6, 9, tzinfo=timezone.utc),
    )
    events = InMemoryEventSource(
        [
            _seat("alice", FROM - timedelta(days=30)),
            _seat("bob", FROM + timedelta(days=10)),
            _seat("carol", FROM + timedelta(days=1), TO - timedelta(days=1)),
        ]
    )
    service = MeteringService(events, InMemorySubscriptionSource([subscription]))

    # ------------------------------------------------------------------
    # 2. Prorated total for the period
    # ------------------------------------------------------------------
    request = AggregationRequest(
        external_subscription_id="sub_acme",
        metric_code="seats",
        from_datetime=FROM,
        to_datetime=TO,
    )
    result = await service.aggregate(request)
    print(f"Billed seats (prorated): {result.aggregation}")
    print(f"Distinct seats seen:     {result.full_units_number}")

    # ------------------------------------------------------------------
    # 3. Current usage, as of the end of the window
    # ------------------------------------------------------------------
    live = await service.aggregate(
        request.model_copy(update={"options": AggregationOptions(is_current_usage=True)})
    )
    print(f"Current usage: {live.aggregation} ({live.current_usage_units} seats open)")

    # ------------------------------------------------------------------
    # 4. Per-day counts, computed directly with the engine
    # ------------------------------------------------------------------
    period = PeriodCalculator().effective_period(subscription, FROM, TO)
    per_day = PeriodAggregationEngine().compute_per_day_aggregation(period, events.units)
    print(f"Peak seats: {per_day.peak}, seat-days: {per_day.unit_days}")
    for day in per_day.days[:3]:
        print(f"  {day.day.isoformat()}: {day.units}")


if __name__ == "__main__":
    asyncio.run(main())
