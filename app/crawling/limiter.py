"""
Admission control for concurrent fetches.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType


class ConcurrencyLimiter:
    """
    Bounds the number of tasks inside the limiter at once.

    Tracks the current and peak number of admitted tasks so callers can
    report on how busy a batch was.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("concurrency limit must be >= 1")
        self._limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._in_flight -= 1
        self._semaphore.release()


LimiterFactory = Callable[[int], ConcurrencyLimiter]


def create_limiter(max_concurrent: int) -> ConcurrencyLimiter:
    """
    Default factory: a fresh limiter per bulk call.
    """

    return ConcurrencyLimiter(max_concurrent)
