"""Prorated unique-count aggregation over a billing period."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from decimal import Decimal

import structlog

from unitmeter.billing.base import ProratedAggregator
from unitmeter.billing.incremental import IncrementalEventAggregator
from unitmeter.billing.intervals import UnitIntervalResolver
from unitmeter.billing.models import (
    AggregationOptions,
    AggregationResult,
    ChainState,
    IncomingEvent,
    PerDayAggregation,
    Period,
    QuantifiedEvent,
)
from unitmeter.billing.period import calendar_days
from unitmeter.billing.proration import fraction, prorate, prorated_total
from unitmeter.core.constants import DEFAULT_PRECISION, DEFAULT_UNIQUE_ID_FIELD
from unitmeter.core.exceptions import EmptyPeriodError

logger = structlog.get_logger(__name__)


class PeriodAggregationEngine(ProratedAggregator):
    """Unique-count aggregation, prorated by how long each unit was active.

    Args:
        precision: Decimal places kept by prorated quantities.
        unique_id_field: Property holding the unit identifier on incoming events.
        resolver: Interval resolver (a default one is created when omitted).
    """

    def __init__(
        self,
        precision: int = DEFAULT_PRECISION,
        unique_id_field: str = DEFAULT_UNIQUE_ID_FIELD,
        resolver: UnitIntervalResolver | None = None,
    ) -> None:
        self._precision = precision
        self._resolver = resolver or UnitIntervalResolver()
        self._incremental = IncrementalEventAggregator(
            unique_id_field=unique_id_field, precision=precision
        )

    @staticmethod
    def _check_period(period: Period) -> None:
        if period.duration <= 0:
            raise EmptyPeriodError(
                details={
                    "from": period.from_datetime.isoformat(),
                    "to": period.to_datetime.isoformat(),
                }
            )

    def _prorated_sum(self, period: Period, units: Sequence[QuantifiedEvent]) -> Decimal:
        return prorated_total(
            (fraction(days, period.billing_days) for days in self._resolver.active_days(period, units)),
            self._precision,
        )

    def _days_to_period_end(self, period: Period, unit: QuantifiedEvent) -> int:
        start = max(unit.added_at, period.from_datetime)
        return calendar_days(start, period.to_datetime, period.timezone)

    # ------------------------------------------------------------------ #
    # Capability interface
    # ------------------------------------------------------------------ #

    def compute_arrears(self, period: Period, units: Sequence[QuantifiedEvent]) -> AggregationResult:
        self._check_period(period)
        aggregation = self._prorated_sum(period, units)
        return AggregationResult(
            aggregation=aggregation,
            count=aggregation,
            full_units_number=self._resolver.distinct_units(period, units),
        )

    def compute_advance(self, period: Period, units: Sequence[QuantifiedEvent]) -> AggregationResult:
        self._check_period(period)
        aggregation = Decimal(len(self._resolver.started_before(period, units)))
        return AggregationResult(
            aggregation=aggregation,
            count=aggregation,
            full_units_number=self._resolver.distinct_units(period, units),
            options=AggregationOptions(is_pay_in_advance=True),
        )

    def compute_incremental(
        self,
        event: IncomingEvent,
        period: Period,
        prior_state: ChainState | None = None,
        open_unit_ids: Collection[str] = frozenset(),
    ) -> AggregationResult:
        self._check_period(period)
        return self._incremental.apply(event, period, prior_state, open_unit_ids)

    def compute_current_usage(
        self,
        period: Period,
        units: Sequence[QuantifiedEvent],
        pay_in_advance: bool,
        prior_state: ChainState | None = None,
    ) -> AggregationResult:
        """Live estimate as of ``period.to_datetime``.

        In arrears this is the prorated total so far.  In advance it is what
        has been billed for the period: each unit already open at the start
        of the period in full, plus the chain's prorated peaks, plus any
        in-period units above the last recorded peak.
        """
        self._check_period(period)
        options = AggregationOptions(is_pay_in_advance=pay_in_advance, is_current_usage=True)
        active_now = self._resolver.active_at(units, period.to_datetime)

        if not pay_in_advance:
            aggregation = self._prorated_sum(period, units)
        else:
            state = prior_state or ChainState()
            persisted = self._resolver.started_before(period, units)
            in_period = sorted(
                (u for u in active_now if u.added_at > period.from_datetime),
                key=lambda u: u.added_at,
            )
            excess = max(len(in_period) - state.max_aggregation, 0)
            above_peak = persisted + in_period[len(in_period) - excess :]

            aggregation = state.max_aggregation_with_proration
            for unit in above_peak:
                aggregation += prorate(
                    self._days_to_period_end(period, unit), period.billing_days, self._precision
                )

        return AggregationResult(
            aggregation=aggregation,
            count=aggregation,
            current_usage_units=len(active_now),
            full_units_number=self._resolver.distinct_units(period, units),
            options=options,
        )

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def aggregate(
        self,
        period: Period,
        units: Sequence[QuantifiedEvent],
        options: AggregationOptions | None = None,
        plan_is_pay_in_advance: bool = False,
        prior_state: ChainState | None = None,
    ) -> AggregationResult:
        """Aggregate *units* over *period* according to *options*.

        Args:
            period: Effective window from :class:`PeriodCalculator`.
            units: Quantified events overlapping the period.
            options: Current-usage / pay-in-advance flags.
            plan_is_pay_in_advance: Whether the plan bills at period start.
            prior_state: Latest chain state, used by advance current usage.

        Raises:
            EmptyPeriodError: The period has no positive duration.
        """
        options = options or AggregationOptions()
        pay_in_advance = plan_is_pay_in_advance or options.is_pay_in_advance

        if options.is_current_usage:
            result = self.compute_current_usage(period, units, pay_in_advance, prior_state)
        elif pay_in_advance:
            result = self.compute_advance(period, units)
        else:
            result = self.compute_arrears(period, units)

        result = result.model_copy(update={"options": options})
        logger.info(
            "period_aggregated",
            from_datetime=period.from_datetime.isoformat(),
            to_datetime=period.to_datetime.isoformat(),
            units=len(units),
            pay_in_advance=pay_in_advance,
            current_usage=options.is_current_usage,
            aggregation=result.aggregation,
        )
        return result

    def compute_per_day_aggregation(
        self, period: Period, units: Sequence[QuantifiedEvent]
    ) -> PerDayAggregation:
        """Active unit count per calendar day, for graduated prorated charges."""
        self._check_period(period)
        return self._resolver.per_day_counts(period, units)
