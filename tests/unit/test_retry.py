"""Tests for resilience/retry.py — RetryPolicy."""
from __future__ import annotations

import pytest

from unitmeter.core.exceptions import InvalidRangeError, StaleChainStateError
from unitmeter.resilience.retry import RetryPolicy


class _CustomRetryableError(Exception):
    """A custom exception to use in tests."""


async def test_succeeds_first_try() -> None:
    async def succeed() -> str:
        return "ok"

    assert await RetryPolicy(backoff_base=0.0).execute(succeed) == "ok"


async def test_retries_stale_chain_state() -> None:
    call_count = 0

    async def flaky() -> str:
        nonlocal call_count
        call_count += 1
        if call_count < 3:
            raise StaleChainStateError()
        return "recovered"

    policy = RetryPolicy(max_retries=3, backoff_base=0.0, jitter=False)
    assert await policy.execute(flaky) == "recovered"
    assert call_count == 3


async def test_exhausts_retries() -> None:
    call_count = 0

    async def always_fail() -> str:
        nonlocal call_count
        call_count += 1
        raise StaleChainStateError()

    policy = RetryPolicy(max_retries=2, backoff_base=0.0, jitter=False)
    with pytest.raises(StaleChainStateError):
        await policy.execute(always_fail)
    assert call_count == 3


async def test_non_retryable_raises_immediately() -> None:
    call_count = 0

    async def bad_range() -> str:
        nonlocal call_count
        call_count += 1
        raise InvalidRangeError()

    policy = RetryPolicy(max_retries=5, backoff_base=0.0)
    with pytest.raises(InvalidRangeError):
        await policy.execute(bad_range)
    assert call_count == 1


async def test_custom_retryable_exceptions() -> None:
    call_count = 0

    async def flaky() -> int:
        nonlocal call_count
        call_count += 1
        if call_count == 1:
            raise _CustomRetryableError("transient")
        return call_count

    policy = RetryPolicy(
        max_retries=1, backoff_base=0.0, retryable_exceptions=(_CustomRetryableError,)
    )
    assert await policy.execute(flaky) == 2


async def test_forwards_arguments() -> None:
    async def add(a: int, b: int = 0) -> int:
        return a + b

    assert await RetryPolicy().execute(add, 2, b=3) == 5


def test_compute_delay_capped() -> None:
    policy = RetryPolicy(backoff_base=1.0, backoff_max=5.0, jitter=False)
    assert policy._compute_delay(0) == 1.0
    assert policy._compute_delay(2) == 4.0
    assert policy._compute_delay(10) == 5.0


async def test_unitmeter_error_decides_for_itself() -> None:
    call_count = 0

    async def bad_range() -> str:
        nonlocal call_count
        call_count += 1
        raise InvalidRangeError()

    policy = RetryPolicy(max_retries=3, backoff_base=0.0, retryable_exceptions=(Exception,))
    with pytest.raises(InvalidRangeError):
        await policy.execute(bad_range)
    assert call_count == 1
