"""Cross-venue matcher - pairwise scoring of markets on different venues."""

from __future__ import annotations

from typing import Iterable

import structlog

from predagg.matching.similarity import (
    DEFAULT_WEIGHTS,
    MIN_SIMILARITY_THRESHOLD,
    SimilarityWeights,
    market_similarity,
    normalize_title,
)
from predagg.models import MarketMatch, NormalizedMarket

log = structlog.get_logger(__name__)


def partition_by_venue(markets: Iterable[NormalizedMarket]) -> dict[str, list[NormalizedMarket]]:
    """Group markets by venue, keeping first-seen venue and market order."""
    by_venue: dict[str, list[NormalizedMarket]] = {}
    for market in markets:
        by_venue.setdefault(market.venue, []).append(market)
    return by_venue


def match_markets(
    markets: Iterable[NormalizedMarket],
    min_similarity: float = MIN_SIMILARITY_THRESHOLD,
    weights: SimilarityWeights = DEFAULT_WEIGHTS,
) -> list[MarketMatch]:
    """All cross-venue pairs scoring at least `min_similarity`, best first.

    Every market on one venue is scored against every market on each other
    venue; there is no index, so cost grows with the square of the input.
    """
    by_venue = partition_by_venue(markets)
    venues = list(by_venue)
    seen: set[tuple[str, str]] = set()
    matches: list[MarketMatch] = []
    for i, v1 in enumerate(venues):
        for v2 in venues[i + 1 :]:
            for m1 in by_venue[v1]:
                for m2 in by_venue[v2]:
                    key = tuple(sorted((m1.dedupe_key, m2.dedupe_key)))
                    if key in seen:
                        continue
                    similarity = market_similarity(m1, m2, weights)
                    if similarity < min_similarity:
                        continue
                    seen.add(key)
                    matches.append(
                        MarketMatch(
                            markets=[m1, m2],
                            similarity=similarity,
                            normalized_title=normalize_title(m1.title),
                        )
                    )
    # sort() is stable, so ties keep first-seen order
    matches.sort(key=lambda m: m.similarity, reverse=True)
    log.debug("markets_matched", venues=len(venues), matches=len(matches), threshold=min_similarity)
    return matches


def find_best_match(
    target: NormalizedMarket,
    candidates: Iterable[NormalizedMarket],
    min_similarity: float = MIN_SIMILARITY_THRESHOLD,
    weights: SimilarityWeights = DEFAULT_WEIGHTS,
) -> MarketMatch | None:
    """Best candidate on another venue, or None if nothing reaches `min_similarity`."""
    best: MarketMatch | None = None
    best_similarity = 0.0
    for candidate in candidates:
        if candidate.venue == target.venue:
            continue
        similarity = market_similarity(target, candidate, weights)
        if similarity > best_similarity and similarity >= min_similarity:
            best_similarity = similarity
            best = MarketMatch(
                markets=[target, candidate],
                similarity=similarity,
                normalized_title=normalize_title(target.title),
            )
    return best
