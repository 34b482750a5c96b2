"""Serving core: cached snapshots, edges, matches, events."""

import asyncio

import pytest

from predagg.errors import AllVenuesFailed, NoDataAvailable, UpstreamTimeout
from predagg.ingestion.manager import FanOutResult, VenueFanOut, VenueResult
from predagg.ingestion.mock import MOCK_ROWS, MockAdapter
from predagg.pipeline.service import MarketService, compute_markets
from predagg.storage.cache import CoalescingCache

NOW = 1_760_000_000_000


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _mock_fetch():
    return VenueFanOut([MockAdapter(now_ms=NOW)], {"mock": None})


@pytest.fixture
def service():
    return MarketService(_mock_fetch())


@pytest.mark.asyncio
async def test_compute_markets_returns_quotes_and_sources():
    resp = await compute_markets(40, _mock_fetch(), CoalescingCache())
    assert len(resp.quotes) == len(MOCK_ROWS)
    assert resp.stale is False
    assert resp.error is None
    assert [s.venue for s in resp.sources] == ["mock"]
    assert resp.sources[0].ok
    assert resp.model_dump(by_alias=True)["list"][0]["venue"] == "polymarket"


@pytest.mark.asyncio
async def test_edges_sorted_by_volume(service):
    resp = await service.edges(40)
    assert len(resp.edges) == len(MOCK_ROWS)
    assert resp.edges[0].market_id == "pm-fed-cut-dec"
    btc = next(e for e in resp.edges if e.market_id == "pm-btc-100k")
    assert btc.edge == pytest.approx(0.05)


@pytest.mark.asyncio
async def test_matches_include_btc_pair(service):
    resp = await service.matches(40)
    assert resp.min_similarity == 0.7
    pairs = [{m.market_id for m in match.markets} for match in resp.matches]
    assert {"pm-btc-100k", "KXBTC-25DEC-100K"} in pairs
    assert all(match.similarity >= 0.7 for match in resp.matches)
    assert resp.cross_venue_edges


@pytest.mark.asyncio
async def test_events_group_fed_markets(service):
    resp = await service.events(40)
    assert len(resp.events[0].markets) == 3
    venue_sets = [set(g.venues) for g in resp.events]
    assert {"polymarket", "kalshi", "predictfun"} in venue_sets


@pytest.mark.asyncio
async def test_threshold_override(service):
    strict = await service.matches(40, min_similarity=1.0)
    assert all(m.similarity == 1.0 for m in strict.matches)
    assert len(strict.matches) < len((await service.matches(40)).matches)


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_fetch_cycle():
    inner = _mock_fetch()
    calls = 0

    async def fetch(limit):
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return await inner(limit)

    svc = MarketService(fetch)
    await asyncio.gather(svc.markets(20), svc.edges(20), svc.matches(20), svc.events(20))
    assert calls == 1


@pytest.mark.asyncio
async def test_stale_snapshot_served_when_fetch_fails():
    clock = FakeClock()
    inner = _mock_fetch()
    fail = False

    async def fetch(limit):
        if fail:
            raise UpstreamTimeout("all upstreams slow")
        return await inner(limit)

    svc = MarketService(fetch, CoalescingCache(ttl_sec=10, stale_window_sec=60, clock=clock))
    await svc.markets(20)
    fail = True
    clock.now = 20
    resp = await svc.markets(20)
    assert resp.stale is True
    assert resp.reason == "upstream_timeout"
    assert len(resp.quotes) == len(MOCK_ROWS)


@pytest.mark.asyncio
async def test_all_venues_failed_without_cache_is_no_data():
    async def fetch(limit):
        return FanOutResult(results=[VenueResult(venue="kalshi", error=UpstreamTimeout("t"))])

    svc = MarketService(fetch)
    with pytest.raises(NoDataAvailable) as excinfo:
        await svc.markets(20)
    assert isinstance(excinfo.value.__cause__, AllVenuesFailed)


@pytest.mark.asyncio
async def test_aclose_calls_hook():
    closed = []

    async def on_close():
        closed.append(True)

    svc = MarketService(_mock_fetch(), on_close=on_close)
    await svc.aclose()
    assert closed == [True]
