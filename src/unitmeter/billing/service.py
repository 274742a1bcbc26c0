"""Metering service — fetch units, clip periods, aggregate, advance chains."""

from __future__ import annotations

import asyncio
from datetime import datetime

import structlog

from unitmeter.billing.base import ProratedAggregator
from unitmeter.billing.chain import ChainStateStore, InMemoryChainStateStore
from unitmeter.billing.engine import PeriodAggregationEngine
from unitmeter.billing.models import (
    AggregationRequest,
    AggregationResult,
    ChainKey,
    IncomingEvent,
    Period,
)
from unitmeter.billing.period import PeriodCalculator
from unitmeter.billing.sources import EventSource, SubscriptionSource
from unitmeter.core.config import MeteringConfig
from unitmeter.core.constants import AggregationType
from unitmeter.core.exceptions import ConfigurationError
from unitmeter.resilience.retry import RetryPolicy
from unitmeter.utils.async_helpers import with_timeout
from unitmeter.utils.logging import bind_chain

logger = structlog.get_logger(__name__)


def build_aggregator(
    aggregation_type: AggregationType | str,
    config: MeteringConfig | None = None,
) -> ProratedAggregator:
    """Return the prorated aggregator for *aggregation_type*.

    Raises:
        ConfigurationError: The aggregation kind has no prorated implementation.
    """
    config = config or MeteringConfig()
    if aggregation_type == AggregationType.UNIQUE_COUNT:
        return PeriodAggregationEngine(
            precision=config.precision, unique_id_field=config.unique_id_field
        )
    raise ConfigurationError(
        f"No prorated aggregator for {aggregation_type}",
        code="unsupported_aggregation",
        details={"aggregation_type": str(aggregation_type)},
    )


class MeteringService:
    """Runs unique-count aggregations against external sources.

    Period aggregations are independent and may run concurrently.  Chain
    updates go through the chain store's version check and are retried from
    a fresh read when another worker wins the race.

    Args:
        events: Where quantified events are read from.
        subscriptions: Where subscription lifecycles are read from.
        chain_store: Chain state store (in-memory when omitted).
        config: Metering settings (defaults when omitted).
    """

    def __init__(
        self,
        events: EventSource,
        subscriptions: SubscriptionSource,
        chain_store: ChainStateStore | None = None,
        config: MeteringConfig | None = None,
    ) -> None:
        self._config = config or MeteringConfig()
        self._events = events
        self._subscriptions = subscriptions
        self._chain_store = chain_store if chain_store is not None else InMemoryChainStateStore()
        self._calculator = PeriodCalculator(default_timezone=self._config.default_timezone)
        self._engine = PeriodAggregationEngine(
            precision=self._config.precision,
            unique_id_field=self._config.unique_id_field,
        )
        self._retry = RetryPolicy(
            max_retries=self._config.max_retries,
            backoff_base=self._config.retry_backoff_base,
        )

    @property
    def chain_store(self) -> ChainStateStore:
        return self._chain_store

    async def _effective_period(
        self, external_subscription_id: str, from_datetime: datetime, to_datetime: datetime
    ) -> tuple[Period, bool]:
        timeout = self._config.fetch_timeout
        subscription = await with_timeout(
            self._subscriptions.get_subscription(external_subscription_id), timeout
        )
        successor = await with_timeout(
            self._subscriptions.get_successor(external_subscription_id), timeout
        )
        period = self._calculator.effective_period(
            subscription, from_datetime, to_datetime, successor=successor
        )
        return period, subscription.pay_in_advance

    async def aggregate(self, request: AggregationRequest) -> AggregationResult:
        """Aggregate one (subscription, metric, group) over the requested window."""
        period, plan_is_pay_in_advance = await self._effective_period(
            request.external_subscription_id, request.from_datetime, request.to_datetime
        )
        units = await with_timeout(
            self._events.fetch_quantified_events(
                request.external_subscription_id,
                request.metric_code,
                request.group_id,
                period.from_datetime,
                period.to_datetime,
            ),
            self._config.fetch_timeout,
        )

        prior_state = None
        if request.options.is_current_usage:
            chain = ChainKey(
                external_subscription_id=request.external_subscription_id,
                metric_code=request.metric_code,
                group_id=request.group_id,
            )
            versioned = await self._chain_store.get(chain)
            prior_state = versioned.state if versioned else None

        return self._engine.aggregate(
            period,
            units,
            options=request.options,
            plan_is_pay_in_advance=plan_is_pay_in_advance,
            prior_state=prior_state,
        )

    async def aggregate_many(
        self,
        requests: list[AggregationRequest],
        max_concurrency: int | None = None,
    ) -> list[AggregationResult]:
        """Aggregate several independent requests in parallel.

        Returns:
            Results in the same order as *requests*.
        """
        if not requests:
            return []
        sem = asyncio.Semaphore(max_concurrency or self._config.max_concurrency)

        async def _run(request: AggregationRequest) -> AggregationResult:
            async with sem:
                return await self.aggregate(request)

        return list(await asyncio.gather(*[_run(r) for r in requests]))

    async def process_event(
        self,
        event: IncomingEvent,
        from_datetime: datetime,
        to_datetime: datetime,
    ) -> AggregationResult:
        """Bill a pay-in-advance event and advance its chain.

        The read of the chain state, the transition and the versioned write
        are retried together, so a transition is never applied on top of a
        stale state.

        Add/remove detection asks the event source which units were open just
        before ``event.timestamp``, so the source must already hold every
        transition earlier than the event.  Recording the event itself before
        or after this call gives the same answer: a unit opened at the
        event's instant is not open yet, and a unit closed at it still is.
        Events of one chain must be processed in timestamp order.  An
        explicit ``operation_type`` property skips the detection, but a
        remove of a unit that is not open is ignored.
        """
        period, _ = await self._effective_period(
            event.external_subscription_id, from_datetime, to_datetime
        )
        chain = event.chain

        async def _step() -> AggregationResult:
            versioned = await self._chain_store.get(chain)
            if versioned is not None:
                version, prior = versioned.version, versioned.state
            else:
                version, prior = 0, event.prior_metadata
            open_unit_ids = await with_timeout(
                self._events.fetch_open_unit_ids(chain, event.timestamp),
                self._config.fetch_timeout,
            )
            result = self._engine.compute_incremental(event, period, prior, open_unit_ids)
            if result.units_applied and result.chain_state is not None:
                await self._chain_store.compare_and_set(chain, version, result.chain_state)
            return result

        with bind_chain(chain, transaction_id=event.transaction_id):
            result = await self._retry.execute(_step)
            logger.info(
                "pay_in_advance_event_processed",
                pay_in_advance_aggregation=result.pay_in_advance_aggregation,
                units_applied=result.units_applied,
            )
        return result
