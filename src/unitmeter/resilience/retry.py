"""Retry policy for optimistic chain-state updates.

A chain update that loses a version race raises :class:`StaleChainStateError`;
the whole read-apply-write is then run again after a short, jittered backoff.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from pydantic import BaseModel, Field

from unitmeter.core.exceptions import StaleChainStateError, UnitMeterError

logger = structlog.get_logger(__name__)

_T = TypeVar("_T")


class RetryPolicy(BaseModel):
    """Exponential backoff for conflicting writers.

    Attributes:
        max_retries: Extra attempts after the first one (0 = no retries).
        backoff_base: Delay in seconds before the first retry.
        backoff_max: Upper bound of any single delay.
        jitter: Draw each delay uniformly below its bound, so racing workers
            do not retry in lockstep.
        retryable_exceptions: Non-unitmeter exception types worth retrying.
    """

    max_retries: int = Field(default=3, ge=0, le=50)
    backoff_base: float = Field(default=0.05, ge=0.0)
    backoff_max: float = Field(default=2.0, ge=0.0)
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = (StaleChainStateError,)

    model_config = {"arbitrary_types_allowed": True}

    def _is_retryable(self, exc: Exception) -> bool:
        # unitmeter errors carry their own verdict.
        if isinstance(exc, UnitMeterError):
            return exc.is_retryable
        return isinstance(exc, self.retryable_exceptions)

    def _compute_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``: ``backoff_base * 2^attempt``, capped."""
        delay: float = min(self.backoff_base * (2 ** attempt), self.backoff_max)
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay

    async def execute(
        self,
        fn: Callable[..., Awaitable[_T]],
        *args: Any,
        **kwargs: Any,
    ) -> _T:
        """Await ``fn(*args, **kwargs)``, retrying retryable failures.

        Raises:
            Exception: Whatever *fn* raised last, once it is not retryable or
                ``max_retries`` is used up.
        """
        attempt = 0
        while True:
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                if not self._is_retryable(exc):
                    raise
                if attempt >= self.max_retries:
                    logger.warning(
                        "retry_exhausted",
                        attempts=attempt + 1,
                        error=type(exc).__name__,
                    )
                    raise
                delay = self._compute_delay(attempt)
                attempt += 1
                logger.info(
                    "retry_scheduled",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    delay=round(delay, 3),
                    error=type(exc).__name__,
                )
                await asyncio.sleep(delay)
