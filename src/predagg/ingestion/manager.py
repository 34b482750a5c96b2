"""Venue fan-out - fetch every venue concurrently and join the ones that succeeded."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable

import httpx
import structlog

from predagg.config.settings import Settings
from predagg.errors import error_code
from predagg.ingestion.base import VenueAdapter, VenueBundle
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.kalshi.client import KalshiAdapter
from predagg.ingestion.limitless.client import LimitlessAdapter
from predagg.ingestion.mock import MockAdapter
from predagg.ingestion.opinion.client import OpinionAdapter
from predagg.ingestion.polymarket.gamma import PolymarketAdapter
from predagg.ingestion.predictfun.client import PredictFunAdapter
from predagg.models import NormalizedMarket, SourceStatus, TokenPrice

log = structlog.get_logger(__name__)

VENUE_ADAPTERS: dict[str, type[VenueAdapter]] = {
    "polymarket": PolymarketAdapter,
    "kalshi": KalshiAdapter,
    "opinion": OpinionAdapter,
    "limitless": LimitlessAdapter,
    "predictfun": PredictFunAdapter,
    "mock": MockAdapter,
}


@dataclass
class VenueResult:
    """One venue's outcome: a bundle or the error that replaced it."""

    venue: str
    bundle: VenueBundle | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.bundle is not None

    def status(self) -> SourceStatus:
        if not self.ok:
            return SourceStatus(venue=self.venue, ok=False, error=str(self.error), code=error_code(self.error))
        return SourceStatus(
            venue=self.venue,
            ok=True,
            markets=len(self.bundle.markets),
            skipped=self.bundle.stats.skipped,
        )


@dataclass
class FanOutResult:
    """Joined contributions of one fetch cycle. Failed venues contribute nothing."""

    results: list[VenueResult] = field(default_factory=list)

    @property
    def markets(self) -> list[NormalizedMarket]:
        return [m for r in self.results if r.ok for m in r.bundle.markets]

    @property
    def prices_by_token(self) -> dict[str, TokenPrice]:
        prices: dict[str, TokenPrice] = {}
        for r in self.results:
            if r.ok:
                prices.update(r.bundle.prices_by_token)
        return prices

    @property
    def sources(self) -> list[SourceStatus]:
        return [r.status() for r in self.results]

    @property
    def errors(self) -> dict[str, str]:
        return {r.venue: str(r.error) for r in self.results if not r.ok}

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and not any(r.ok for r in self.results)


async def fetch_venue(adapter: VenueAdapter, gateway: UpstreamGateway | None, limit: int) -> VenueResult:
    """Run one adapter; any failure becomes an empty, logged contribution."""
    try:
        bundle = await adapter.fetch_bundle(gateway, limit)
    except Exception as e:
        log.warning("venue_failed", venue=adapter.venue_id, code=error_code(e), error=str(e))
        return VenueResult(venue=adapter.venue_id, error=e)
    log.debug(
        "venue_fetched",
        venue=adapter.venue_id,
        markets=len(bundle.markets),
        skipped=bundle.stats.skipped,
    )
    return VenueResult(venue=adapter.venue_id, bundle=bundle)


async def collect_venues(
    adapters: Iterable[VenueAdapter],
    gateways: dict[str, UpstreamGateway | None],
    limit: int,
) -> FanOutResult:
    """Fetch all venues concurrently. One venue failing never cancels the others."""
    adapters = list(adapters)
    results = await asyncio.gather(
        *(fetch_venue(a, gateways.get(a.venue_id), limit) for a in adapters)
    )
    fanout = FanOutResult(results=list(results))
    if fanout.errors:
        log.info("fanout_partial", ok=len(adapters) - len(fanout.errors), failed=sorted(fanout.errors))
    return fanout


def build_adapters(settings: Settings) -> list[VenueAdapter]:
    """Adapters for enabled venues. Venues needing a key that is not set are skipped."""
    adapters = []
    for name in settings.enabled_venues:
        cls = VENUE_ADAPTERS.get(name)
        if cls is None:
            log.warning("unknown_venue", venue=name)
            continue
        if cls.requires_api_key and not settings.venue(name).api_key:
            log.info("venue_skipped", venue=name, reason="api key not set")
            continue
        adapters.append(cls())
    return adapters


def build_gateways(
    settings: Settings,
    adapters: Iterable[VenueAdapter],
    client: httpx.AsyncClient | None = None,
) -> dict[str, UpstreamGateway]:
    """One gateway per networked adapter, each with its own concurrency limiter."""
    gateways = {}
    for adapter in adapters:
        if not adapter.uses_network:
            continue
        cfg = settings.venue(adapter.venue_id)
        gateways[adapter.venue_id] = UpstreamGateway(
            adapter.venue_id,
            cfg.base_url or adapter.default_base_url,
            api_key=cfg.api_key,
            auth_header=adapter.auth_header,
            auth_scheme=adapter.auth_scheme,
            timeout_sec=settings.timeout_sec,
            max_retries=settings.max_retries,
            backoff_base_sec=settings.backoff_base_sec,
            max_concurrent=settings.max_concurrent,
            client=client,
        )
    return gateways


class VenueFanOut:
    """Callable fetch source: ``await fanout(limit)`` runs one cycle across all venues."""

    def __init__(self, adapters: list[VenueAdapter], gateways: dict[str, UpstreamGateway | None]) -> None:
        self.adapters = adapters
        self.gateways = gateways

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> VenueFanOut:
        adapters = build_adapters(settings)
        return cls(adapters, build_gateways(settings, adapters, client=client))

    async def __call__(self, limit: int) -> FanOutResult:
        return await collect_venues(self.adapters, self.gateways, limit)

    async def aclose(self) -> None:
        for gateway in self.gateways.values():
            if gateway is not None:
                await gateway.aclose()
