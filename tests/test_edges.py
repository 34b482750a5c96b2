"""Complement-sum edge calculation."""

import pytest

from predagg.metrics.edge import compute_edges, cross_venue_edge, cross_venue_edges
from predagg.models import MarketMatch, NormalizedMarket, TokenPrice

NOW = 1_760_000_000_000


def _market(market_id, volume=0.0, venue="opinion"):
    return NormalizedMarket(
        venue=venue,
        market_id=market_id,
        title=f"Market {market_id}",
        volume=volume,
        yes_token_id=f"{market_id}-y",
        no_token_id=f"{market_id}-n",
    )


def _prices(market_id, yes, no, yes_ts=None, no_ts=None):
    out = {}
    if yes is not None:
        out[f"{market_id}-y"] = TokenPrice(token_id=f"{market_id}-y", price=yes, timestamp=yes_ts)
    if no is not None:
        out[f"{market_id}-n"] = TokenPrice(token_id=f"{market_id}-n", price=no, timestamp=no_ts)
    return out


def test_underpriced_market_has_positive_edge():
    [edge] = compute_edges([_market("m1")], _prices("m1", "0.45", "0.50"), now_ms=NOW)
    assert edge.sum == pytest.approx(0.95)
    assert edge.edge == pytest.approx(0.05)
    assert edge.yes.token_id == "m1-y"
    assert edge.updated_at == NOW


def test_overpriced_sum_clips_to_zero():
    [edge] = compute_edges([_market("m1")], _prices("m1", 0.60, 0.55), now_ms=NOW)
    assert edge.sum == pytest.approx(1.15)
    assert edge.edge == 0.0


def test_percent_style_price():
    [edge] = compute_edges([_market("m1")], _prices("m1", "46", "0.50"), now_ms=NOW)
    assert edge.yes.price == pytest.approx(0.46)
    assert edge.sum == pytest.approx(0.96)
    assert edge.edge == pytest.approx(0.04)


def test_missing_side_is_excluded_not_zero_filled():
    markets = [_market("m1"), _market("m2")]
    prices = {**_prices("m1", "0.4", None), **_prices("m2", "0.4", "0.5")}
    edges = compute_edges(markets, prices, now_ms=NOW)
    assert [e.market_id for e in edges] == ["m2"]


def test_unparseable_price_counts_as_zero():
    [edge] = compute_edges([_market("m1")], _prices("m1", "n/a", "0.5"), now_ms=NOW)
    assert edge.yes.price == 0.0
    assert edge.edge == pytest.approx(0.5)


def test_updated_at_is_latest_price_timestamp():
    [edge] = compute_edges([_market("m1")], _prices("m1", "0.4", "0.5", yes_ts=1000, no_ts=2000), now_ms=NOW)
    assert edge.updated_at == 2000


def test_sorted_by_volume_descending_and_rounded():
    markets = [_market("a", volume=10), _market("b", volume=300), _market("c", volume=50)]
    prices = {**_prices("a", 0.1, 0.2), **_prices("b", 0.333333333, 0.333333333), **_prices("c", 0.5, 0.5)}
    edges = compute_edges(markets, prices, now_ms=NOW)
    assert [e.market_id for e in edges] == ["b", "c", "a"]
    assert edges[0].sum == 0.666667
    assert all(e.edge >= 0 for e in edges)


def test_cross_venue_edge_picks_cheaper_leg_pair():
    a = NormalizedMarket(venue="polymarket", market_id="p1", title="X", yes_price=0.45, no_price=0.50)
    b = NormalizedMarket(venue="kalshi", market_id="k1", title="X", yes_price=0.48, no_price=0.54)
    match = MarketMatch(markets=[a, b], similarity=1.0, normalized_title="x")
    edge = cross_venue_edge(match)
    # a.yes + b.no = 0.99, b.yes + a.no = 0.98
    assert edge.yes_venue == "kalshi"
    assert edge.no_venue == "polymarket"
    assert edge.spread == pytest.approx(0.98)
    assert edge.edge == pytest.approx(0.02)


def test_cross_venue_edge_needs_all_legs():
    a = NormalizedMarket(venue="polymarket", market_id="p1", title="X", yes_price=0.45, no_price=0.50)
    b = NormalizedMarket(venue="kalshi", market_id="k1", title="X", yes_price=0.48)
    match = MarketMatch(markets=[a, b], similarity=1.0, normalized_title="x")
    assert cross_venue_edge(match) is None
    assert cross_venue_edges([match]) == []
