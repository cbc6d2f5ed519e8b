"""Tests for the outbound token bucket."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from src.http.rate_limiter import TokenBucketLimiter


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def monotonic(self) -> float:
        return self.now


def test_rejects_invalid_arguments() -> None:
    with pytest.raises(ValueError):
        TokenBucketLimiter(0, 1)
    with pytest.raises(ValueError):
        TokenBucketLimiter(1, 0)


def test_burst_then_empty() -> None:
    clock = _Clock()
    with patch("src.http.rate_limiter.time", clock):
        limiter = TokenBucketLimiter(requests_per_second=1, burst_size=3)
        assert [limiter.try_acquire() for _ in range(4)] == [True, True, True, False]


def test_refills_over_time_up_to_capacity() -> None:
    clock = _Clock()
    with patch("src.http.rate_limiter.time", clock):
        limiter = TokenBucketLimiter(requests_per_second=2, burst_size=2)
        assert limiter.try_acquire()
        assert limiter.try_acquire()
        assert not limiter.try_acquire()
        clock.now += 0.5
        assert limiter.try_acquire()
        clock.now += 100
        assert limiter.available == 2


@pytest.mark.asyncio
async def test_acquire_waits_for_refill() -> None:
    clock = _Clock()
    with (
        patch("src.http.rate_limiter.time", clock),
        patch("src.http.rate_limiter.asyncio.sleep") as mock_sleep,
    ):
        async def _sleep(delay: float) -> None:
            clock.now += delay

        mock_sleep.side_effect = _sleep
        limiter = TokenBucketLimiter(requests_per_second=4, burst_size=1)
        await limiter.acquire()
        await limiter.acquire()

    mock_sleep.assert_called_once()
    assert mock_sleep.call_args.args[0] == pytest.approx(0.25)


@pytest.mark.asyncio
async def test_cancelled_waiter_returns_its_token() -> None:
    clock = _Clock()
    with patch("src.http.rate_limiter.time", clock):
        limiter = TokenBucketLimiter(requests_per_second=1, burst_size=1)
        await limiter.acquire()
        waiter = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert not limiter.try_acquire()
        # One second refills exactly one token only if the reservation was returned.
        clock.now += 1.0
        assert limiter.try_acquire()
