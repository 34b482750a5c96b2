"""Serving core - cached fetch cycles turned into market, edge, match and event views."""

from __future__ import annotations

from typing import Awaitable, Callable

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

from predagg.config.settings import Settings
from predagg.ingestion.manager import VenueFanOut
from predagg.matching.grouping import group_matches_into_events
from predagg.matching.matcher import match_markets
from predagg.matching.similarity import (
    DEFAULT_WEIGHTS,
    MIN_SIMILARITY_THRESHOLD,
    SimilarityWeights,
)
from predagg.metrics.edge import compute_edges, cross_venue_edges
from predagg.models import (
    CrossVenueEdge,
    EventGroup,
    MarketEdge,
    MarketMatch,
    MarketQuote,
    SourceStatus,
)
from predagg.pipeline.engine import Fetch, MarketSnapshot, fetch_snapshot
from predagg.storage.cache import CacheResult, CoalescingCache

log = structlog.get_logger(__name__)

__all__ = [
    "MarketService",
    "MarketsResponse",
    "EdgesResponse",
    "MatchesResponse",
    "EventsResponse",
    "compute_markets",
    "match_markets",
]


class _SnapshotResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    updated_at: int  # ms epoch
    stale: bool = False
    sources: list[SourceStatus] = Field(default_factory=list)
    error: str | None = None
    reason: str | None = None


class MarketsResponse(_SnapshotResponse):
    quotes: list[MarketQuote] = Field(default_factory=list, alias="list")


class EdgesResponse(_SnapshotResponse):
    edges: list[MarketEdge] = Field(default_factory=list, alias="list")


class MatchesResponse(_SnapshotResponse):
    min_similarity: float
    matches: list[MarketMatch] = Field(default_factory=list)
    cross_venue_edges: list[CrossVenueEdge] = Field(default_factory=list)


class EventsResponse(_SnapshotResponse):
    min_similarity: float
    events: list[EventGroup] = Field(default_factory=list)


def _cache_key(limit: int) -> str:
    return f"snapshot:{limit}"


async def load_snapshot(limit: int, fetch: Fetch, cache: CoalescingCache) -> CacheResult:
    """Cached snapshot for `limit`; concurrent callers share one fetch cycle."""
    return await cache.get_or_fetch(_cache_key(limit), lambda: fetch_snapshot(fetch, limit))


def _meta(result: CacheResult) -> dict:
    snapshot: MarketSnapshot = result.value
    return {
        "updated_at": snapshot.fetched_at,
        "stale": result.stale,
        "sources": snapshot.sources,
        "error": result.error,
        "reason": result.reason,
    }


async def compute_markets(limit: int, fetch: Fetch, cache: CoalescingCache) -> MarketsResponse:
    """Quotes from every venue that answered, possibly served stale from cache."""
    result = await load_snapshot(limit, fetch, cache)
    return MarketsResponse(quotes=[m.to_quote() for m in result.value.markets], **_meta(result))


class MarketService:
    """Owns the cache and fetch source shared by the API and CLI."""

    def __init__(
        self,
        fetch: Fetch,
        cache: CoalescingCache | None = None,
        *,
        min_similarity: float = MIN_SIMILARITY_THRESHOLD,
        weights: SimilarityWeights = DEFAULT_WEIGHTS,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.fetch = fetch
        self.cache = cache or CoalescingCache()
        self.min_similarity = min_similarity
        self.weights = weights
        self._on_close = on_close

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> MarketService:
        fanout = VenueFanOut.from_settings(settings, client=client)
        log.info("service_configured", venues=[a.venue_id for a in fanout.adapters])
        return cls(
            fanout,
            CoalescingCache(ttl_sec=settings.cache_ttl_sec, stale_window_sec=settings.stale_window_sec),
            min_similarity=settings.min_similarity,
            weights=SimilarityWeights.from_dict(settings.similarity_weights),
            on_close=fanout.aclose,
        )

    async def snapshot(self, limit: int) -> CacheResult:
        return await load_snapshot(limit, self.fetch, self.cache)

    async def markets(self, limit: int) -> MarketsResponse:
        return await compute_markets(limit, self.fetch, self.cache)

    async def edges(self, limit: int) -> EdgesResponse:
        result = await self.snapshot(limit)
        snapshot: MarketSnapshot = result.value
        edges = compute_edges(snapshot.markets, snapshot.prices_by_token, now_ms=snapshot.fetched_at)
        return EdgesResponse(edges=edges, **_meta(result))

    async def _matches(self, limit: int, min_similarity: float | None) -> tuple[CacheResult, float, list[MarketMatch]]:
        threshold = self.min_similarity if min_similarity is None else min_similarity
        result = await self.snapshot(limit)
        return result, threshold, match_markets(result.value.markets, threshold, self.weights)

    async def matches(self, limit: int, min_similarity: float | None = None) -> MatchesResponse:
        result, threshold, matches = await self._matches(limit, min_similarity)
        return MatchesResponse(
            min_similarity=threshold,
            matches=matches,
            cross_venue_edges=cross_venue_edges(matches),
            **_meta(result),
        )

    async def events(self, limit: int, min_similarity: float | None = None) -> EventsResponse:
        result, threshold, matches = await self._matches(limit, min_similarity)
        return EventsResponse(
            min_similarity=threshold,
            events=group_matches_into_events(matches),
            **_meta(result),
        )

    async def aclose(self) -> None:
        if self._on_close is not None:
            await self._on_close()
