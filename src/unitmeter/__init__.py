"""unitmeter — prorated unique-count usage metering."""

from unitmeter.__version__ import __version__

from unitmeter.billing import (
    AggregationOptions,
    AggregationRequest,
    AggregationResult,
    ChainKey,
    ChainState,
    IncomingEvent,
    InMemoryChainStateStore,
    InMemoryEventSource,
    InMemorySubscriptionSource,
    MeteringService,
    Period,
    PeriodAggregationEngine,
    PeriodCalculator,
    QuantifiedEvent,
    Subscription,
)
from unitmeter.core.config import MeteringConfig
from unitmeter.core.constants import (
    AggregationType,
    BillingInterval,
    BillingTime,
    OperationType,
    SubscriptionStatus,
)
from unitmeter.core.exceptions import (
    AggregationError,
    ConfigurationError,
    EmptyPeriodError,
    InvalidRangeError,
    ProrationError,
    StaleChainStateError,
    SubscriptionNotFoundError,
    UnitMeterError,
)
from unitmeter.utils.logging import bind_chain, configure_logging, get_logger

__all__ = [
    "__version__",
    "AggregationError",
    "AggregationOptions",
    "AggregationRequest",
    "AggregationResult",
    "AggregationType",
    "BillingInterval",
    "BillingTime",
    "ChainKey",
    "ChainState",
    "ConfigurationError",
    "EmptyPeriodError",
    "IncomingEvent",
    "InMemoryChainStateStore",
    "InMemoryEventSource",
    "InMemorySubscriptionSource",
    "InvalidRangeError",
    "MeteringConfig",
    "MeteringService",
    "OperationType",
    "Period",
    "PeriodAggregationEngine",
    "PeriodCalculator",
    "ProrationError",
    "QuantifiedEvent",
    "StaleChainStateError",
    "Subscription",
    "SubscriptionNotFoundError",
    "SubscriptionStatus",
    "UnitMeterError",
    "bind_chain",
    "configure_logging",
    "get_logger",
]
