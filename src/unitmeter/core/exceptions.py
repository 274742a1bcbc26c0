from __future__ import annotations

from typing import Any


class UnitMeterError(Exception):
    """Base exception for all unitmeter errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"invalid_range"``).
        details: Arbitrary key/value context about the error.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


class ConfigurationError(UnitMeterError): ...


# ---------------------------------------------------------------------------
# Aggregation errors (fatal to the call)
# ---------------------------------------------------------------------------


class AggregationError(UnitMeterError): ...


class InvalidRangeError(AggregationError):
    """A window whose end lies before its start."""

    def __init__(
        self,
        message: str = "Period end is before period start",
        code: str | None = "invalid_range",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmptyPeriodError(AggregationError):
    """A period whose duration is zero or negative."""

    def __init__(
        self,
        message: str = "Period duration must be positive",
        code: str | None = "empty_period",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class ProrationError(AggregationError):
    """A proration fraction outside ``[0, 1]`` or a non-positive denominator."""

    def __init__(
        self,
        message: str = "Invalid proration fraction",
        code: str | None = "invalid_fraction",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


# ---------------------------------------------------------------------------
# Chain state errors
# ---------------------------------------------------------------------------


class ChainStateError(UnitMeterError): ...


class StaleChainStateError(ChainStateError):
    """The chain state changed between read and write.

    Always retryable: the transition must be recomputed from the fresh state.
    """

    def __init__(
        self,
        message: str = "Chain state was updated concurrently",
        code: str | None = "stale_chain_state",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------


class SourceError(UnitMeterError): ...


class SubscriptionNotFoundError(SourceError): ...
