"""Collaborator contracts: where units and subscriptions come from.

The aggregation core never talks to a database itself.  A billing pipeline
plugs its persistence layer in by subclassing :class:`EventSource` and
:class:`SubscriptionSource`; the in-memory versions back tests and examples.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from unitmeter.billing.models import ChainKey, IncomingEvent, QuantifiedEvent, Subscription
from unitmeter.core.constants import DEFAULT_UNIQUE_ID_FIELD, OperationType
from unitmeter.core.exceptions import SubscriptionNotFoundError


class EventSource(ABC):
    """Abstract base class for quantified-event stores."""

    @abstractmethod
    async def fetch_quantified_events(
        self,
        external_subscription_id: str,
        metric_code: str,
        group_id: str | None,
        from_datetime: datetime,
        to_datetime: datetime,
    ) -> list[QuantifiedEvent]:
        """Return units of the chain whose lifetime overlaps the range."""

    @abstractmethod
    async def fetch_open_unit_ids(self, chain: ChainKey, before: datetime) -> set[str]:
        """Return unique ids of units opened strictly before *before* and still open then."""


class SubscriptionSource(ABC):
    """Abstract base class for subscription lifecycle lookups."""

    @abstractmethod
    async def get_subscription(self, external_id: str) -> Subscription:
        """Return the subscription or raise :class:`SubscriptionNotFoundError`."""

    @abstractmethod
    async def get_successor(self, external_id: str) -> Subscription | None:
        """Return the subscription that upgraded *external_id*, if any."""


def _in_chain(unit: QuantifiedEvent, chain: ChainKey) -> bool:
    return (
        unit.external_subscription_id == chain.external_subscription_id
        and unit.metric_code == chain.metric_code
        and unit.group_id == chain.group_id
    )


class InMemoryEventSource(EventSource):
    """List-backed event source.

    Args:
        units: Initial quantified events.
        unique_id_field: Property holding the unit identifier in incoming events.
    """

    def __init__(
        self,
        units: list[QuantifiedEvent] | None = None,
        unique_id_field: str = DEFAULT_UNIQUE_ID_FIELD,
    ) -> None:
        self._units: list[QuantifiedEvent] = list(units) if units else []
        self._unique_id_field = unique_id_field

    def add(self, unit: QuantifiedEvent) -> None:
        self._units.append(unit)

    @property
    def units(self) -> list[QuantifiedEvent]:
        return list(self._units)

    async def fetch_quantified_events(
        self,
        external_subscription_id: str,
        metric_code: str,
        group_id: str | None,
        from_datetime: datetime,
        to_datetime: datetime,
    ) -> list[QuantifiedEvent]:
        chain = ChainKey(
            external_subscription_id=external_subscription_id,
            metric_code=metric_code,
            group_id=group_id,
        )
        return [
            u
            for u in self._units
            if _in_chain(u, chain)
            and u.added_at <= to_datetime
            and (u.removed_at is None or u.removed_at >= from_datetime)
        ]

    async def fetch_open_unit_ids(self, chain: ChainKey, before: datetime) -> set[str]:
        return {
            u.unique_id
            for u in self._units
            if _in_chain(u, chain)
            and u.added_at < before
            and (u.removed_at is None or u.removed_at >= before)
        }

    def record_transition(self, event: IncomingEvent, operation: OperationType) -> QuantifiedEvent | None:
        """Open or close the unit named by *event*.

        Returns the created or closed unit, or ``None`` when the event carries
        no unique id or closes a unit that is not open.
        """
        unique_id = event.properties.get(self._unique_id_field)
        if unique_id is None or unique_id == "":
            return None
        unique_id = str(unique_id)

        if operation == OperationType.ADD:
            unit = QuantifiedEvent(
                unique_id=unique_id,
                added_at=event.timestamp,
                external_subscription_id=event.external_subscription_id,
                metric_code=event.metric_code,
                group_id=event.group_id,
            )
            self._units.append(unit)
            return unit

        for index, unit in enumerate(self._units):
            if _in_chain(unit, event.chain) and unit.unique_id == unique_id and unit.removed_at is None:
                closed = unit.model_copy(update={"removed_at": event.timestamp})
                self._units[index] = closed
                return closed
        return None


class InMemorySubscriptionSource(SubscriptionSource):
    def __init__(self, subscriptions: list[Subscription] | None = None) -> None:
        self._subscriptions: dict[str, Subscription] = {
            s.external_id: s for s in subscriptions or []
        }

    def add(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.external_id] = subscription

    async def get_subscription(self, external_id: str) -> Subscription:
        subscription = self._subscriptions.get(external_id)
        if subscription is None:
            raise SubscriptionNotFoundError(
                f"Subscription not found: {external_id}",
                code="subscription_not_found",
                details={"external_id": external_id},
            )
        return subscription

    async def get_successor(self, external_id: str) -> Subscription | None:
        for subscription in self._subscriptions.values():
            if subscription.previous_subscription_id == external_id:
                return subscription
        return None
