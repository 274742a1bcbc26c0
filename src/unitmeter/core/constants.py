from __future__ import annotations

from enum import StrEnum


class AggregationType(StrEnum):
    UNIQUE_COUNT = "unique_count_agg"
    # Not implemented by this package; listed so callers get a clear error.
    COUNT = "count_agg"
    SUM = "sum_agg"
    MAX = "max_agg"


class BillingTime(StrEnum):
    ANNIVERSARY = "anniversary"
    CALENDAR = "calendar"


class BillingInterval(StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class SubscriptionStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    TERMINATED = "terminated"
    CANCELED = "canceled"


class OperationType(StrEnum):
    ADD = "add"
    REMOVE = "remove"


# Field carrying the unit identifier in event properties.
DEFAULT_UNIQUE_ID_FIELD = "unique_id"

# Decimal places kept by prorated quantities.
DEFAULT_PRECISION = 5
