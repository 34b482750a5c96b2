"""Field probes and per-venue normalization."""

import httpx
import pytest

from predagg.errors import ConfigurationMissing
from predagg.ingestion.fields import TITLE, YES_PRICE, path, string_list, unwrap_list
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.kalshi.client import KalshiAdapter
from predagg.ingestion.limitless.client import LimitlessAdapter
from predagg.ingestion.opinion.client import OpinionAdapter
from predagg.ingestion.polymarket.gamma import PolymarketAdapter
from predagg.ingestion.predictfun.client import PredictFunAdapter


def test_field_probe_priority_and_fallthrough():
    assert TITLE.resolve({"question": "Q?", "title": "T"}) == "Q?"
    assert TITLE.resolve({"marketTitle": "M", "question": "Q?"}) == "M"
    assert TITLE.resolve({"name": "  "}) is None
    # An unparseable candidate falls through to the next extractor
    assert YES_PRICE.resolve({"yesPrice": "abc", "price": "0.4"}) == pytest.approx(0.4)


def test_path_handles_lists_and_missing_keys():
    raw = {"outcomes": [{"price": 0.3}, {"price": 0.7}]}
    assert path("outcomes", 1, "price")(raw) == 0.7
    assert path("outcomes", 5, "price")(raw) is None
    assert path("missing", "x")(raw) is None


def test_unwrap_list_envelopes():
    assert unwrap_list([1, 2]) == [1, 2]
    assert unwrap_list({"markets": [1]}) == [1]
    assert unwrap_list({"data": {"data": [3]}}, envelopes=(("data", "data"), ("data",))) == [3]
    assert unwrap_list({"unexpected": 1}) == []
    assert unwrap_list(None) == []


def test_string_list():
    assert string_list(["a", {"label": "b"}, {"name": "c"}, None, 3]) == ["a", "b", "c", "3"]
    assert string_list("not-a-list") == []


def test_polymarket_locates_yes_by_label():
    raw = {
        "id": "123",
        "question": "Will X happen?",
        "slug": "will-x-happen",
        "outcomes": '["No", "Yes"]',
        "outcomePrices": '["0.6", "0.4"]',
        "clobTokenIds": '["t-no", "t-yes"]',
        "volume24hr": "1000",
        "endDate": "2025-12-31T00:00:00Z",
    }
    m = PolymarketAdapter().normalize_market(raw)
    assert m is not None
    assert m.yes_price == pytest.approx(0.4)
    assert m.no_price == pytest.approx(0.6)
    assert m.yes_token_id == "t-yes"
    assert m.no_token_id == "t-no"
    assert m.url == "https://polymarket.com/event/will-x-happen"
    assert m.volume == 1000.0
    assert m.expires_at == 1_767_139_200_000


def test_polymarket_skips_records_without_prices():
    assert PolymarketAdapter().normalize_market({"question": "Q", "slug": "q"}) is None


def test_build_bundle_counts_skips_and_indexes_prices():
    adapter = PolymarketAdapter()
    rows = [
        {"id": "1", "question": "A?", "slug": "a", "outcomePrices": ["0.3", "0.7"]},
        {"id": "2", "question": "B?", "slug": "b"},
        "not-a-dict",
    ]
    bundle = adapter.build_bundle(rows, now_ms=1000)
    assert bundle.stats.fetched == 3
    assert bundle.stats.parsed == 1
    assert bundle.stats.skipped == 2
    market = bundle.markets[0]
    assert market.yes_token_id == "polymarket-1-yes"
    assert bundle.prices_by_token["polymarket-1-yes"].price == pytest.approx(0.3)
    assert bundle.prices_by_token["polymarket-1-no"].timestamp == 1000


def test_kalshi_probes_ask_fields():
    raw = {"ticker": "KXBTC-25", "title": "BTC above 100k", "yes_ask": 45, "no_ask": 57, "volume": 10}
    m = KalshiAdapter().normalize_market(raw)
    assert m.market_id == "KXBTC-25"
    assert m.yes_price == pytest.approx(0.45)
    assert m.no_price == pytest.approx(0.57)
    assert m.url == "https://kalshi.com/markets/KXBTC-25"


def test_kalshi_yes_only_leaves_no_unset():
    m = KalshiAdapter().normalize_market({"ticker": "T", "title": "T?", "yes_bid": "0.2"})
    assert m.yes_price == pytest.approx(0.2)
    assert m.no_price is None


def test_limitless_prices_array():
    m = LimitlessAdapter().normalize_market({"id": 7, "title": "ETH above 5k", "slug": "eth-5k", "prices": [22, 78]})
    assert m.market_id == "7"
    assert m.yes_price == pytest.approx(0.22)
    assert m.no_price == pytest.approx(0.78)
    assert m.url == "https://limitless.exchange/markets/eth-5k"

    m = LimitlessAdapter().normalize_market(
        {"address": "0xabc", "question": "Q?", "prices": [{"price": "0.3"}, {"value": 0.7}]}
    )
    assert m.market_id == "0xabc"
    assert (m.yes_price, m.no_price) == (pytest.approx(0.3), pytest.approx(0.7))
    assert m.url is None


def test_predictfun_outcome_prices_and_default_url():
    raw = {"id": "pf1", "question": "Fed cut?", "outcomes": [{"price": 0.6}, {"price": 0.41}]}
    m = PredictFunAdapter().normalize_market(raw)
    assert m.yes_price == pytest.approx(0.6)
    assert m.no_price == pytest.approx(0.41)
    assert m.url == "https://predict.fun/market/pf1"


@pytest.mark.asyncio
async def test_predictfun_requires_api_key():
    gateway = UpstreamGateway("predictfun", "https://api.predict.test")
    with pytest.raises(ConfigurationMissing):
        await PredictFunAdapter().fetch_bundle(gateway, 10)
    await gateway.aclose()


@pytest.mark.asyncio
async def test_opinion_fetches_token_prices_and_drops_failures():
    seen_keys = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_keys.append(request.headers.get("apikey"))
        if request.url.path.endswith("/market"):
            assert request.url.params["status"] == "activated"
            return httpx.Response(
                200,
                json={
                    "result": {
                        "list": [
                            {
                                "market_id": 1,
                                "marketTitle": "Will BTC exceed $100K?",
                                "yes_token_id": "y1",
                                "no_token_id": "n1",
                                "volume": "500",
                                "topic_id": 9,
                            },
                            {"market_id": 2, "marketTitle": "No tokens"},
                        ]
                    }
                },
            )
        if request.url.path.endswith("/token/latest-price"):
            token = request.url.params["token_id"]
            if token == "y1":
                return httpx.Response(200, json={"data": {"token_id": "y1", "price": "0.45", "timestamp": 1_700_000_000}})
            return httpx.Response(404, json={"error": "unknown token"})
        return httpx.Response(404)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    gateway = UpstreamGateway(
        "opinion",
        "https://opinion.test/openapi",
        api_key="k",
        auth_header="apikey",
        auth_scheme=None,
        client=client,
    )
    bundle = await OpinionAdapter().fetch_bundle(gateway, 10)
    await client.aclose()

    assert all(k == "k" for k in seen_keys)
    assert bundle.stats.skipped == 1
    [market] = bundle.markets
    assert market.yes_price == pytest.approx(0.45)
    assert market.no_price is None
    assert market.updated_at == 1_700_000_000_000
    assert market.url == "https://opinion.trade/detail?topicId=9"
    assert set(bundle.prices_by_token) == {"y1"}


@pytest.mark.asyncio
async def test_opinion_without_configuration_raises():
    gateway = UpstreamGateway("opinion", "", api_key=None)
    with pytest.raises(ConfigurationMissing):
        await OpinionAdapter().fetch_bundle(gateway, 10)
    await gateway.aclose()


@pytest.mark.asyncio
async def test_polymarket_counts_closed_rows_as_skipped():
    rows = [
        {"id": "1", "question": "Open?", "slug": "open", "outcomePrices": ["0.3", "0.7"]},
        {"id": "2", "question": "Closed?", "slug": "closed", "outcomePrices": ["0.9", "0.1"], "closed": True},
        {"id": "3", "question": "Inactive?", "slug": "inactive", "outcomePrices": ["0.5", "0.5"], "active": False},
    ]
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=rows)))
    gateway = UpstreamGateway("polymarket", "https://gamma.test", client=client)
    bundle = await PolymarketAdapter().fetch_bundle(gateway, 10)
    await client.aclose()

    assert (bundle.stats.fetched, bundle.stats.parsed, bundle.stats.skipped) == (3, 1, 2)
    assert [m.market_id for m in bundle.markets] == ["1"]
