"""Per-event aggregation for pay-in-advance chains.

Each (subscription, metric, group) chain carries a :class:`ChainState`.  An
incoming event moves the chain's active unit count up or down; only a new
period high is billed, prorated over the days left in the period.  Churn below
an already-billed peak costs nothing extra.
"""

from __future__ import annotations

from collections.abc import Collection
from decimal import Decimal

import structlog

from unitmeter.billing.models import AggregationResult, ChainState, IncomingEvent, Period
from unitmeter.billing.period import calendar_days
from unitmeter.billing.proration import prorate
from unitmeter.core.constants import DEFAULT_PRECISION, DEFAULT_UNIQUE_ID_FIELD, OperationType
from unitmeter.core.exceptions import InvalidRangeError

logger = structlog.get_logger(__name__)


class IncrementalEventAggregator:
    """Applies one incoming event to a chain state.

    Args:
        unique_id_field: Property holding the unit identifier.
        precision: Decimal places of billed quantities.
    """

    def __init__(
        self,
        unique_id_field: str = DEFAULT_UNIQUE_ID_FIELD,
        precision: int = DEFAULT_PRECISION,
    ) -> None:
        self._unique_id_field = unique_id_field
        self._precision = precision

    def classify(
        self,
        event: IncomingEvent,
        unique_id: str,
        open_unit_ids: Collection[str],
    ) -> OperationType:
        """Decide whether *event* opens or closes a unit.

        An explicit ``operation_type`` property wins; otherwise the event
        closes the unit when *unique_id* is currently open.
        """
        declared = event.properties.get("operation_type")
        if declared in (OperationType.ADD, OperationType.REMOVE):
            return OperationType(declared)
        if unique_id in open_unit_ids:
            return OperationType.REMOVE
        return OperationType.ADD

    def remaining_days(self, event: IncomingEvent, period: Period) -> int:
        """Calendar days from the event (or the period start) to the period end."""
        if event.timestamp > period.to_datetime:
            raise InvalidRangeError(
                "Event is after the end of the period",
                details={
                    "timestamp": event.timestamp.isoformat(),
                    "to": period.to_datetime.isoformat(),
                },
            )
        start = max(event.timestamp, period.from_datetime)
        return calendar_days(start, period.to_datetime, period.timezone)

    def apply(
        self,
        event: IncomingEvent,
        period: Period,
        prior_state: ChainState | None = None,
        open_unit_ids: Collection[str] = frozenset(),
    ) -> AggregationResult:
        """Apply *event* on top of *prior_state* and return what to bill now.

        *prior_state* defaults to the event's ``prior_metadata`` and then to
        the zero state.  The returned result carries the next chain state in
        ``chain_state``; persisting it is the caller's job.
        A removal of a unit that is not in *open_unit_ids* leaves the state
        untouched.
        """
        state = prior_state or event.prior_metadata or ChainState()

        raw_id = event.properties.get(self._unique_id_field)
        if raw_id is None or raw_id == "":
            logger.debug(
                "incremental_event_ignored",
                transaction_id=event.transaction_id,
                reason="missing_unique_id",
                field=self._unique_id_field,
            )
            return AggregationResult(chain_state=state, current_usage_units=state.current_aggregation)

        unique_id = str(raw_id)
        operation = self.classify(event, unique_id, open_unit_ids)
        if operation == OperationType.REMOVE and unique_id not in open_unit_ids:
            logger.debug(
                "incremental_event_ignored",
                transaction_id=event.transaction_id,
                reason="unit_not_open",
                unique_id=unique_id,
            )
            return AggregationResult(chain_state=state, current_usage_units=state.current_aggregation)

        if operation == OperationType.ADD:
            current = state.current_aggregation + 1
        else:
            current = max(state.current_aggregation - 1, 0)
        units_applied = 1 if current != state.current_aggregation else 0

        if current > state.max_aggregation:
            contribution = prorate(
                self.remaining_days(event, period), period.billing_days, self._precision
            )
            next_state = ChainState(
                current_aggregation=current,
                max_aggregation=current,
                max_aggregation_with_proration=state.max_aggregation_with_proration + contribution,
            )
            full_units = 1
        else:
            contribution = Decimal(0)
            next_state = ChainState(
                current_aggregation=current,
                max_aggregation=state.max_aggregation,
                max_aggregation_with_proration=state.max_aggregation_with_proration,
            )
            full_units = 0

        logger.debug(
            "incremental_event_applied",
            transaction_id=event.transaction_id,
            operation=str(operation),
            current_aggregation=current,
            max_aggregation=next_state.max_aggregation,
            contribution=contribution,
        )
        return AggregationResult(
            aggregation=contribution,
            pay_in_advance_aggregation=contribution,
            current_usage_units=current,
            units_applied=units_applied,
            full_units_number=full_units,
            count=contribution,
            chain_state=next_state,
        )
