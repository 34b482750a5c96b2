"""Single-flight TTL cache with stale-on-failure serving.

Concurrent readers of a missing or expired key share one loader call. When
the loader fails, a value younger than ``ttl + stale_window`` is served with
``stale=True``; otherwise the entry is dropped and ``NoDataAvailable`` raised.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

import structlog
from cachetools import TTLCache

from predagg.errors import NoDataAvailable, error_code

log = structlog.get_logger(__name__)

T = TypeVar("T")
Loader = Callable[[], Awaitable[Any]]


class CacheState(str, Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    FRESH = "fresh"
    STALE = "stale"


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


@dataclass
class CacheResult(Generic[T]):
    """Value returned to a reader, flagged when it is a stale fallback."""

    value: T
    stale: bool = False
    error: str | None = None
    reason: str | None = None


class CoalescingCache:
    """Keyed cache; create one per service and inject it where needed.

    Entries live in a ``TTLCache`` whose ttl is ``ttl_sec + stale_window_sec``,
    so anything it still holds is servable. ``stored_at`` splits fresh from stale.
    """

    def __init__(
        self,
        ttl_sec: float = 10.0,
        stale_window_sec: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 256,
    ) -> None:
        self.ttl_sec = ttl_sec
        self.stale_window_sec = stale_window_sec
        self._clock = clock
        self._entries: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_sec + stale_window_sec, timer=clock)
        self._inflight: dict[str, asyncio.Task] = {}

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at <= self.ttl_sec

    def get(self, key: str) -> Any | None:
        """Fresh value for `key`, or None."""
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            return entry.value
        return None

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything when `key` is None. In-flight loads are left running."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def state(self, key: str) -> CacheState:
        if key in self._inflight:
            return CacheState.FETCHING
        entry = self._entries.get(key)
        if entry is None:
            return CacheState.EMPTY
        return CacheState.FRESH if self._is_fresh(entry) else CacheState.STALE

    async def get_or_fetch(self, key: str, loader: Loader) -> CacheResult:
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            return CacheResult(value=entry.value)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader))
            self._inflight[key] = task
        else:
            log.debug("cache_join_inflight", key=key)
        # Shielded: a cancelled reader must not abort the load other readers wait on.
        return await asyncio.shield(task)

    async def _load(self, key: str, loader: Loader) -> CacheResult:
        try:
            value = await loader()
        except Exception as e:
            entry = self._entries.get(key)
            if entry is not None:
                log.warning("cache_serving_stale", key=key, code=error_code(e), error=str(e))
                return CacheResult(value=entry.value, stale=True, error=str(e), reason=error_code(e))
            log.warning("cache_no_data", key=key, code=error_code(e), error=str(e))
            raise NoDataAvailable(f"No data available: {e}") from e
        finally:
            self._inflight.pop(key, None)
        self.set(key, value)
        return CacheResult(value=value)
