"""Capability interface shared by prorated aggregation kinds.

Each aggregation kind (unique count here; sum or max elsewhere) provides the
three computations a billing pipeline needs.  Subclass
:class:`ProratedAggregator` to add another kind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence

from unitmeter.billing.models import (
    AggregationResult,
    ChainState,
    IncomingEvent,
    Period,
    QuantifiedEvent,
)


class ProratedAggregator(ABC):
    """Abstract base class for prorated aggregations."""

    @abstractmethod
    def compute_arrears(self, period: Period, units: Sequence[QuantifiedEvent]) -> AggregationResult:
        """Full-period prorated quantity, billed at the end of the period."""

    @abstractmethod
    def compute_advance(self, period: Period, units: Sequence[QuantifiedEvent]) -> AggregationResult:
        """Quantity billed at the start of the period, from its starting state."""

    @abstractmethod
    def compute_incremental(
        self,
        event: IncomingEvent,
        period: Period,
        prior_state: ChainState | None = None,
        open_unit_ids: Collection[str] = frozenset(),
    ) -> AggregationResult:
        """Additional quantity to bill right now for a single incoming event."""
