"""Token bucket rate limiter for outbound API requests."""

from __future__ import annotations

import asyncio
import threading
import time


class TokenBucketLimiter:
    """Token bucket shared by every request issued through one client.

    The bucket starts full at ``burst_size`` tokens and refills at
    ``requests_per_second``. ``acquire`` reserves a token under the lock and
    sleeps outside it, so waiters queue in reservation order and a cancelled
    waiter gives its token back.
    """

    def __init__(self, requests_per_second: float, burst_size: int) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if burst_size < 1:
            raise ValueError("burst_size must be at least 1")
        self._rate = requests_per_second
        self._capacity = float(burst_size)
        self._tokens = self._capacity
        self._updated = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = now - self._updated
        if elapsed > 0:
            self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
            self._updated = now

    def _reserve(self) -> float:
        """Take one token, returning how long the caller must wait for it."""
        with self._lock:
            self._refill(time.monotonic())
            self._tokens -= 1
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self._rate

    def _release(self) -> None:
        with self._lock:
            self._refill(time.monotonic())
            self._tokens = min(self._capacity, self._tokens + 1)

    def try_acquire(self) -> bool:
        """Take a token only if one is available right now."""
        with self._lock:
            self._refill(time.monotonic())
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    async def acquire(self) -> None:
        delay = self._reserve()
        if delay <= 0:
            return
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self._release()
            raise

    @property
    def available(self) -> float:
        with self._lock:
            self._refill(time.monotonic())
            return max(self._tokens, 0.0)
