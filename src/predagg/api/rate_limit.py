"""Fixed-window per-client request limiter for the HTTP API."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def headers(self, now: float) -> dict[str, str]:
        out = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            out["Retry-After"] = str(max(1, math.ceil(self.reset_at - now)))
        return out


class FixedWindowLimiter:
    """`max_requests` per `window_sec` per client key. Expired windows are dropped lazily."""

    def __init__(
        self,
        max_requests: int = 30,
        window_sec: float = 15.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window_sec = window_sec
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def now(self) -> float:
        return self._clock()

    def check(self, key: str) -> RateDecision:
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            self._cleanup(now)
            window = self._windows[key] = _Window(count=0, reset_at=now + self.window_sec)
        if window.count >= self.max_requests:
            return RateDecision(False, self.max_requests, 0, window.reset_at)
        window.count += 1
        return RateDecision(True, self.max_requests, self.max_requests - window.count, window.reset_at)

    def _cleanup(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now >= w.reset_at]
        for k in expired:
            del self._windows[k]


def client_key(request: Request) -> str:
    """First x-forwarded-for hop, then x-real-ip, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"
