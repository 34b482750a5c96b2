"""Abstract venue adapter protocol for pluggable venues (Polymarket, Kalshi, ...)."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog

from predagg.ingestion.gateway import UpstreamGateway
from predagg.models import NormalizedMarket, TokenPrice

log = structlog.get_logger(__name__)


@dataclass
class NormalizeStats:
    """Per-venue record counts for one fetch cycle."""

    venue: str
    fetched: int = 0
    parsed: int = 0
    skipped: int = 0


@dataclass
class VenueBundle:
    """One venue's contribution to a fetch cycle: markets plus the token price lookup for edges."""

    venue: str
    markets: list[NormalizedMarket] = field(default_factory=list)
    prices_by_token: dict[str, TokenPrice] = field(default_factory=dict)
    stats: NormalizeStats | None = None

    def __post_init__(self) -> None:
        if self.stats is None:
            self.stats = NormalizeStats(venue=self.venue)


class VenueAdapter(ABC):
    """Venue adapter: list markets through a gateway and normalize raw records.

    ``normalize_market`` must return None for records it cannot use; it never raises
    for bad data so one malformed record cannot sink a venue.
    """

    venue_id: str = ""
    # Header used for the API key, and its scheme prefix (None for a bare key).
    auth_header: str = "Authorization"
    auth_scheme: str | None = "Bearer"
    requires_api_key: bool = False
    default_base_url: str = ""
    # Offline adapters get no gateway.
    uses_network: bool = True

    @abstractmethod
    async def fetch_bundle(self, gateway: UpstreamGateway, limit: int) -> VenueBundle:
        """Fetch up to `limit` markets and return the normalized bundle."""
        ...

    @abstractmethod
    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        """Convert one raw venue record to a NormalizedMarket, or None to skip it."""
        ...

    def build_bundle(self, rows: Iterable[Any], now_ms: int | None = None) -> VenueBundle:
        """Normalize rows, counting skips, and index embedded yes/no prices by token id."""
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        bundle = VenueBundle(venue=self.venue_id)
        for raw in rows:
            bundle.stats.fetched += 1
            market = self.normalize_market(raw) if isinstance(raw, dict) else None
            if market is None:
                bundle.stats.skipped += 1
                continue
            bundle.stats.parsed += 1
            attach_prices(bundle, market, now_ms)
        if bundle.stats.skipped:
            log.info(
                "venue_records_skipped",
                venue=self.venue_id,
                fetched=bundle.stats.fetched,
                skipped=bundle.stats.skipped,
            )
        return bundle


def attach_prices(bundle: VenueBundle, market: NormalizedMarket, now_ms: int) -> None:
    """Add `market` to the bundle, registering its embedded prices under yes/no token ids."""
    ts = market.updated_at or now_ms
    if market.yes_price is not None:
        market.yes_token_id = market.yes_token_id or f"{market.venue}-{market.market_id}-yes"
        bundle.prices_by_token[market.yes_token_id] = TokenPrice(
            token_id=market.yes_token_id, price=market.yes_price, timestamp=ts
        )
    if market.no_price is not None:
        market.no_token_id = market.no_token_id or f"{market.venue}-{market.market_id}-no"
        bundle.prices_by_token[market.no_token_id] = TokenPrice(
            token_id=market.no_token_id, price=market.no_price, timestamp=ts
        )
    bundle.markets.append(market)
