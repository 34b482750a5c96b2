"""FIFO concurrency limiter for venue REST calls. Backoff on 429/5xx."""

from __future__ import annotations

import asyncio
from collections import deque


class ConcurrencyLimiter:
    """At most `max_concurrent` holders; waiters are admitted strictly in arrival order.

    A released slot is handed directly to the oldest waiter, so exactly one
    waiter wakes per freed slot and late arrivals cannot overtake the queue.
    """

    def __init__(self, max_concurrent: int = 10) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self._inflight = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def inflight(self) -> int:
        return self._inflight

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def acquire(self) -> None:
        if self._inflight < self.max_concurrent and not self._waiters:
            self._inflight += 1
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Slot was handed over just before cancellation; pass it on.
                self.release()
            elif fut in self._waiters:
                self._waiters.remove(fut)
            raise

    def release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Slot ownership transfers; inflight count is unchanged.
                fut.set_result(None)
                return
        self._inflight -= 1

    async def __aenter__(self) -> ConcurrencyLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.release()


def backoff_delay(attempt: int, base_delay: float = 0.5) -> float:
    """Return delay in seconds before retry number `attempt` (0-based). Exponential backoff."""
    return base_delay * (2 ** attempt)
