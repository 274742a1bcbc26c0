# RUN: python examples/02_pay_in_advance_chain.py
"""Pay in advance — bill each seat event as it arrives and keep the chain state.

Demonstrates: MeteringService.process_event(), InMemoryChainStateStore
history, and how churn below an already billed peak costs nothing.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from unitmeter import (
    ChainKey,
    IncomingEvent,
    InMemoryChainStateStore,
    InMemoryEventSource,
    InMemorySubscriptionSource,
    MeteringConfig,
    MeteringService,
    OperationType,
    Subscription,
    configure_logging,
)

FROM = datetime(2022, 7, 9, tzinfo=timezone.utc)
TO = datetime(2022, 8, 8, 23, 59, 59, tzinfo=timezone.utc)


async def main() -> None:
    configure_logging(MeteringConfig(log_level="WARNING", json_logs=False))

    subscription = Subscription(
        external_id="sub_acme",
        started_at=datetime(2022, 6, 9, tzinfo=timezone.utc),
        subscription_at=datetime(2022, 6, 9, tzinfo=timezone.utc),
        pay_in_advance=True,
    )
    events = InMemoryEventSource()
    store = InMemoryChainStateStore()
    service = MeteringService(events, InMemorySubscriptionSource([subscription]), store)

    # ------------------------------------------------------------------
    # Seat activity: alice joins and leaves, bob joins below the peak, carol joins
    # ------------------------------------------------------------------
    timeline = [
        ("alice", OperationType.ADD, FROM + timedelta(days=10)),
        ("alice", OperationType.REMOVE, FROM + timedelta(days=12)),
        ("bob", OperationType.ADD, FROM + timedelta(days=14)),
        ("carol", OperationType.ADD, FROM + timedelta(days=20)),
    ]

    for seat, operation, timestamp in timeline:
        event = IncomingEvent(
            external_subscription_id="sub_acme",
            metric_code="seats",
            timestamp=timestamp,
            properties={"unique_id": seat, "operation_type": str(operation)},
        )
        result = await service.process_event(event, FROM, TO)
        # Keep the event log in step with what was billed.
        events.record_transition(event, operation)
        print(
            f"{timestamp.date()} {operation:<6} {seat:<6} "
            f"billed={result.pay_in_advance_aggregation} open={result.current_usage_units}"
        )

    # ------------------------------------------------------------------
    # Chain history
    # ------------------------------------------------------------------
    print("\nChain snapshots:")
    chain = ChainKey(external_subscription_id="sub_acme", metric_code="seats")
    for version, state in enumerate(store.history(chain), start=1):
        print(f"  v{version}: {state.to_metadata()}")


if __name__ == "__main__":
    asyncio.run(main())
