"""Polymarket Gamma API adapter - market listing with embedded outcome prices."""

from __future__ import annotations

import json
from typing import Any

import structlog

from predagg.ingestion.base import VenueAdapter, VenueBundle
from predagg.ingestion.fields import (
    CATEGORY,
    DESCRIPTION,
    EXPIRES_AT,
    TITLE,
    UPDATED_AT,
    VOLUME,
    FieldProbe,
    keys,
    string_list,
    unwrap_list,
)
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.prices import normalize_price
from predagg.models import NormalizedMarket

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"
MARKET_URL = "https://polymarket.com/event"

_MARKET_ID = FieldProbe("market_id", keys("id", "conditionId", "condition_id", "slug"))
_DESCRIPTION = DESCRIPTION.extend(*keys("resolutionSource"))


def _json_list(value: str | list[Any] | None) -> list[Any]:
    """Gamma sends outcome arrays either as lists or as JSON-encoded strings."""
    if isinstance(value, list):
        return value
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return []
    return parsed if isinstance(parsed, list) else []


def _outcome_label(outcome: Any) -> str:
    if isinstance(outcome, dict):
        return str(outcome.get("name") or outcome.get("label") or "").lower()
    return str(outcome).lower()


def _parse_outcomes(raw: dict[str, Any]) -> tuple[float | None, float | None, str | None, str | None]:
    """Locate YES/NO prices and token ids by outcome label, falling back to index 0/1."""
    labels = [_outcome_label(o) for o in _json_list(raw.get("outcomes"))]
    prices = _json_list(raw.get("outcomePrices")) or _json_list(raw.get("probabilities"))
    token_ids = _json_list(raw.get("clobTokenIds"))
    if "yes" in labels and "no" in labels:
        yes_idx, no_idx = labels.index("yes"), labels.index("no")
    else:
        yes_idx, no_idx = 0, 1
    yes_price = normalize_price(prices[yes_idx]) if len(prices) > yes_idx else None
    no_price = normalize_price(prices[no_idx]) if len(prices) > no_idx else None
    yes_token = str(token_ids[yes_idx]) if len(token_ids) > yes_idx else None
    no_token = str(token_ids[no_idx]) if len(token_ids) > no_idx else None
    return yes_price, no_price, yes_token, no_token


class PolymarketAdapter(VenueAdapter):
    """Gamma ``/markets``; prices arrive inline as ``outcomePrices``."""

    venue_id = "polymarket"
    default_base_url = GAMMA_API_BASE

    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        if raw.get("closed") is True or raw.get("active") is False:
            return None
        title = TITLE.resolve(raw)
        slug = raw.get("slug")
        yes_price, no_price, yes_token, no_token = _parse_outcomes(raw)
        if not title or not slug or yes_price is None or no_price is None:
            return None
        return NormalizedMarket(
            venue=self.venue_id,
            market_id=_MARKET_ID.resolve(raw) or str(slug),
            title=title,
            yes_price=yes_price,
            no_price=no_price,
            volume=VOLUME.resolve(raw) or 0.0,
            updated_at=UPDATED_AT.resolve(raw),
            expires_at=EXPIRES_AT.resolve(raw),
            category=CATEGORY.resolve(raw),
            tags=string_list(raw.get("tags")),
            description=_DESCRIPTION.resolve(raw),
            url=f"{MARKET_URL}/{slug}",
            yes_token_id=yes_token,
            no_token_id=no_token,
            extra={"slug": slug, "condition_id": raw.get("conditionId")},
        )

    async def fetch_bundle(self, gateway: UpstreamGateway, limit: int) -> VenueBundle:
        data = await gateway.get_json(
            "/markets", params={"active": "true", "closed": "false", "limit": limit}
        )
        return self.build_bundle(unwrap_list(data))
