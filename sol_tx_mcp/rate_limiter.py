"""Per-tool in-memory rate limiter (per-process, best-effort)."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional


class TokenBucket:
    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.timestamp = time.monotonic()
        self._lock = asyncio.Lock()

    async def consume(self, amount: float = 1.0) -> bool:
        async with self._lock:
            now = time.monotonic()
            self.tokens = min(self.capacity, self.tokens + (now - self.timestamp) * self.rate)
            self.timestamp = now
            if self.tokens >= amount:
                self.tokens -= amount
                return True
            return False


class PerKeyRateLimiter:
    """
    One token bucket per tool name. ``per_tool`` overrides the rate for
    specific tools; a rate of zero or less disables limiting for that tool.
    """

    def __init__(
        self,
        rate_per_sec: float,
        burst: Optional[float] = None,
        *,
        per_tool: Optional[Dict[str, float]] = None,
    ) -> None:
        self.rate = rate_per_sec
        self.burst = burst
        self.per_tool = dict(per_tool or {})
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = asyncio.Lock()

    def _rate_for(self, key: str) -> float:
        return self.per_tool.get(key, self.rate)

    async def allow(self, key: str) -> bool:
        rate = self._rate_for(key)
        if rate <= 0:
            return True
        async with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                capacity = self.burst if self.burst is not None else max(rate, 1.0)
                bucket = TokenBucket(rate, capacity)
                self._buckets[key] = bucket
        return await bucket.consume()
