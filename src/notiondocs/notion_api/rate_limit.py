"""Token-bucket rate limiter for client-side request pacing.

Tokens are replenished at a fixed rate (tokens per second) up to a burst
ceiling.  A caller asking for more tokens than are available awaits for
as long as the deficit takes to refill.
"""

from __future__ import annotations

import asyncio
import time


class AsyncTokenBucket:
    """Async-safe token bucket.

    Parameters
    ----------
    rate_rps:
        Sustained token-refill rate in tokens per second.
    burst:
        Maximum number of tokens the bucket can hold (burst ceiling).
    """

    __slots__ = ("_lock", "burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int = 3) -> None:
        if rate_rps <= 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")

        self.rate: float = rate_rps
        self.burst: int = burst
        self.tokens: float = float(burst)
        self.last_refill: float = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> float:
        now = time.monotonic()
        self.tokens = min(self.burst, self.tokens + (now - self.last_refill) * self.rate)
        self.last_refill = now
        return now

    async def acquire(self, tokens: int = 1) -> float:
        """Take *tokens* from the bucket, awaiting if necessary.

        Returns the number of seconds the caller waited (``0.0`` if tokens
        were immediately available).
        """
        async with self._lock:
            self._refill()
            if self.tokens >= tokens:
                self.tokens -= tokens
                return 0.0

            wait = (tokens - self.tokens) / self.rate
            # The deficit is paid for now; the next caller queues behind it.
            self.tokens -= tokens

        await asyncio.sleep(wait)
        return wait
