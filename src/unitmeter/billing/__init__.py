from unitmeter.billing.base import ProratedAggregator
from unitmeter.billing.chain import (
    ChainStateStore,
    InMemoryChainStateStore,
    VersionedChainState,
)
from unitmeter.billing.engine import PeriodAggregationEngine
from unitmeter.billing.incremental import IncrementalEventAggregator
from unitmeter.billing.intervals import UnitInterval, UnitIntervalResolver
from unitmeter.billing.models import (
    AggregationOptions,
    AggregationRequest,
    AggregationResult,
    ChainKey,
    ChainState,
    DayUsage,
    IncomingEvent,
    PerDayAggregation,
    Period,
    QuantifiedEvent,
    Subscription,
)
from unitmeter.billing.period import PeriodCalculator
from unitmeter.billing.service import MeteringService, build_aggregator
from unitmeter.billing.sources import (
    EventSource,
    InMemoryEventSource,
    InMemorySubscriptionSource,
    SubscriptionSource,
)

__all__ = [
    "AggregationOptions",
    "AggregationRequest",
    "AggregationResult",
    "ChainKey",
    "ChainState",
    "ChainStateStore",
    "DayUsage",
    "EventSource",
    "IncomingEvent",
    "IncrementalEventAggregator",
    "InMemoryChainStateStore",
    "InMemoryEventSource",
    "InMemorySubscriptionSource",
    "MeteringService",
    "PerDayAggregation",
    "Period",
    "PeriodAggregationEngine",
    "PeriodCalculator",
    "ProratedAggregator",
    "QuantifiedEvent",
    "Subscription",
    "SubscriptionSource",
    "UnitInterval",
    "UnitIntervalResolver",
    "VersionedChainState",
    "build_aggregator",
]
