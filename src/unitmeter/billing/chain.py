"""Versioned storage of chain states with optimistic concurrency.

Every update produces a new immutable :class:`ChainState` snapshot and bumps
the chain's version.  A writer must present the version it read; a mismatch
means another worker advanced the chain first, and the transition has to be
recomputed.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog
from pydantic import BaseModel, Field

from unitmeter.billing.models import ChainKey, ChainState
from unitmeter.core.exceptions import StaleChainStateError

logger = structlog.get_logger(__name__)


class VersionedChainState(BaseModel):
    state: ChainState
    version: int = Field(ge=1)

    model_config = {"frozen": True}


class ChainStateStore(ABC):
    """Abstract base class for chain state stores.

    Subclass this to persist states next to the event log (SQL row with a
    version column, Redis hash with ``WATCH``...).
    """

    @abstractmethod
    async def get(self, chain: ChainKey) -> VersionedChainState | None:
        """Return the latest state of *chain*, or ``None`` before its first event."""

    @abstractmethod
    async def compare_and_set(
        self, chain: ChainKey, expected_version: int, state: ChainState
    ) -> VersionedChainState:
        """Store *state* if *chain* is still at *expected_version* (0 = never written).

        Raises:
            StaleChainStateError: The chain moved past *expected_version*.
        """

    @abstractmethod
    async def clear(self) -> None:
        """Remove all chains."""


class InMemoryChainStateStore(ChainStateStore):
    """Process-local store keeping the full snapshot history of each chain."""

    def __init__(self) -> None:
        self._history: dict[ChainKey, list[ChainState]] = {}
        self._lock = asyncio.Lock()

    async def get(self, chain: ChainKey) -> VersionedChainState | None:
        async with self._lock:
            snapshots = self._history.get(chain)
            if not snapshots:
                return None
            return VersionedChainState(state=snapshots[-1], version=len(snapshots))

    async def compare_and_set(
        self, chain: ChainKey, expected_version: int, state: ChainState
    ) -> VersionedChainState:
        async with self._lock:
            snapshots = self._history.setdefault(chain, [])
            if len(snapshots) != expected_version:
                logger.info(
                    "chain_state_conflict",
                    subscription=chain.external_subscription_id,
                    metric=chain.metric_code,
                    expected_version=expected_version,
                    actual_version=len(snapshots),
                )
                raise StaleChainStateError(
                    details={
                        "expected_version": expected_version,
                        "actual_version": len(snapshots),
                    }
                )
            snapshots.append(state)
            return VersionedChainState(state=state, version=len(snapshots))

    async def clear(self) -> None:
        async with self._lock:
            self._history.clear()

    def history(self, chain: ChainKey) -> list[ChainState]:
        """All snapshots of *chain*, oldest first."""
        return list(self._history.get(chain, []))
