"""
Domain-aware request spacing for async crawls.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforces a minimum interval between request starts per domain.

    Concurrent callers for the same domain queue on a per-domain lock, so a
    batch that hits one site many times is spread out while requests to
    different sites proceed independently.
    """

    def __init__(self, *, min_interval_seconds: float) -> None:
        self._min_interval_seconds = max(0.0, min_interval_seconds)
        self._last_request_by_domain: dict[str, float] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def min_interval_seconds(self) -> float:
        return self._min_interval_seconds

    async def wait(self, url: str) -> None:
        """
        Sleep as needed so outbound requests respect per-domain spacing.
        """

        if self._min_interval_seconds <= 0:
            return

        parsed = urlparse(url)
        domain = parsed.netloc.lower() or parsed.path.lower()
        if not domain:
            return

        async with self._locks[domain]:
            last_time = self._last_request_by_domain.get(domain)
            if last_time is not None:
                wait_seconds = self._min_interval_seconds - (time.monotonic() - last_time)
                if wait_seconds > 0:
                    await asyncio.sleep(wait_seconds)
            self._last_request_by_domain[domain] = time.monotonic()
