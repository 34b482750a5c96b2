"""Fetch cycle -> snapshot of markets, token prices and per-venue status."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from predagg.errors import AllVenuesFailed
from predagg.ingestion.manager import FanOutResult
from predagg.models import NormalizedMarket, SourceStatus, TokenPrice

Fetch = Callable[[int], Awaitable[FanOutResult]]


@dataclass
class MarketSnapshot:
    """Everything one fetch cycle produced. This is the value the cache stores."""

    markets: list[NormalizedMarket] = field(default_factory=list)
    prices_by_token: dict[str, TokenPrice] = field(default_factory=dict)
    sources: list[SourceStatus] = field(default_factory=list)
    fetched_at: int = 0  # ms epoch


def build_snapshot(fanout: FanOutResult, now_ms: int | None = None) -> MarketSnapshot:
    """Join the fan-out; raise AllVenuesFailed when no attempted venue succeeded."""
    if fanout.all_failed:
        detail = "; ".join(f"{venue}: {err}" for venue, err in sorted(fanout.errors.items()))
        raise AllVenuesFailed(f"All venues failed ({detail})")
    return MarketSnapshot(
        markets=fanout.markets,
        prices_by_token=fanout.prices_by_token,
        sources=fanout.sources,
        fetched_at=now_ms if now_ms is not None else int(time.time() * 1000),
    )


async def fetch_snapshot(fetch: Fetch, limit: int) -> MarketSnapshot:
    return build_snapshot(await fetch(limit))
