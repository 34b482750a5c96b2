"""Complement-sum edge per market, and best two-venue leg pair per match."""

from __future__ import annotations

import time
from typing import Iterable, Mapping

import structlog

from predagg.ingestion.prices import parse_price
from predagg.models import CrossVenueEdge, MarketEdge, MarketMatch, NormalizedMarket, PricedSide, TokenPrice

log = structlog.get_logger(__name__)

SUSPICIOUS_SUM_HIGH = 1.5
SUSPICIOUS_SUM_LOW = 0.5


def compute_edges(
    markets: Iterable[NormalizedMarket],
    prices_by_token: Mapping[str, TokenPrice],
    now_ms: int | None = None,
) -> list[MarketEdge]:
    """Edge = max(0, 1 - (yes + no)) for every market with both sides priced.

    Markets missing either token price are excluded rather than zero-filled.
    A side whose raw price does not parse counts as 0. Sorted by volume, highest first.
    """
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    edges: list[MarketEdge] = []
    for market in markets:
        yes_tp = prices_by_token.get(market.yes_token_id or "")
        no_tp = prices_by_token.get(market.no_token_id or "")
        if yes_tp is None or no_tp is None:
            continue
        yes_price = parse_price(yes_tp.price)
        no_price = parse_price(no_tp.price)
        total = yes_price + no_price
        if total > SUSPICIOUS_SUM_HIGH or total < SUSPICIOUS_SUM_LOW:
            log.debug(
                "suspicious_sum",
                venue=market.venue,
                market_id=market.market_id,
                yes=yes_price,
                no=no_price,
                sum=round(total, 6),
            )
        edges.append(
            MarketEdge(
                market_id=market.market_id,
                title=market.title,
                venue=market.venue,
                url=market.url,
                yes=PricedSide(token_id=yes_tp.token_id, price=yes_price),
                no=PricedSide(token_id=no_tp.token_id, price=no_price),
                sum=round(total, 6),
                edge=round(max(0.0, 1.0 - total), 6),
                volume=market.volume,
                updated_at=max(yes_tp.timestamp or now_ms, no_tp.timestamp or now_ms),
            )
        )

    if edges:
        sums = [e.sum for e in edges]
        log.info(
            "edge_summary",
            markets=len(edges),
            with_edge=sum(1 for e in edges if e.edge > 0),
            avg_sum=round(sum(sums) / len(sums), 4),
            min_sum=round(min(sums), 4),
            max_sum=round(max(sums), 4),
        )
    edges.sort(key=lambda e: e.volume, reverse=True)
    return edges


def cross_venue_edge(match: MarketMatch) -> CrossVenueEdge | None:
    """Cheaper of YES-on-A + NO-on-B and YES-on-B + NO-on-A for the first two markets of a match.

    None when any of the four legs is unpriced.
    """
    a, b = match.markets[0], match.markets[1]
    if None in (a.yes_price, a.no_price, b.yes_price, b.no_price):
        return None
    a_yes_b_no = a.yes_price + b.no_price
    b_yes_a_no = b.yes_price + a.no_price
    if a_yes_b_no <= b_yes_a_no:
        yes_leg, no_leg, spread = a, b, a_yes_b_no
    else:
        yes_leg, no_leg, spread = b, a, b_yes_a_no
    return CrossVenueEdge(
        yes_venue=yes_leg.venue,
        yes_market_id=yes_leg.market_id,
        yes_price=yes_leg.yes_price,
        no_venue=no_leg.venue,
        no_market_id=no_leg.market_id,
        no_price=no_leg.no_price,
        spread=round(spread, 6),
        edge=round(max(0.0, 1.0 - spread), 6),
        similarity=match.similarity,
    )


def cross_venue_edges(matches: Iterable[MarketMatch]) -> list[CrossVenueEdge]:
    """Priced leg pairs for all matches, largest edge first."""
    edges = [e for e in (cross_venue_edge(m) for m in matches) if e is not None]
    edges.sort(key=lambda e: e.edge, reverse=True)
    return edges
