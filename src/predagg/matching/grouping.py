"""Event grouping - fold pairwise matches into per-event clusters."""

from __future__ import annotations

from typing import Iterable

from predagg.matching.similarity import normalize_title
from predagg.matching.tags import derive_tags
from predagg.models import EventGroup, MarketMatch


def group_matches_into_events(matches: Iterable[MarketMatch]) -> list[EventGroup]:
    """Merge matches sharing a normalized title.

    Markets are de-duplicated by ``venue-market_id``; groups with fewer than two
    distinct markets are dropped. Largest groups first, then highest similarity.
    """
    groups: dict[str, EventGroup] = {}
    members: dict[str, set[str]] = {}
    for match in matches:
        key = match.normalized_title or normalize_title(match.markets[0].title)
        group = groups.get(key)
        if group is None:
            group = groups[key] = EventGroup(key=key, display_title=match.markets[0].title)
            members[key] = set()
        group.max_similarity = max(group.max_similarity, match.similarity)
        for market in match.markets:
            if market.dedupe_key in members[key]:
                continue
            members[key].add(market.dedupe_key)
            group.markets.append(market)

    result = [g for g in groups.values() if len(g.markets) >= 2]
    for group in result:
        group.tags = sorted({t for m in group.markets for t in derive_tags(m.title)})
    result.sort(key=lambda g: (len(g.markets), g.max_similarity), reverse=True)
    return result
