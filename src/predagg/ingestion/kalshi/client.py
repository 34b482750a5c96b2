"""Kalshi adapter, served through the public DFlow prediction-markets API."""

from __future__ import annotations

from typing import Any

from predagg.ingestion.base import VenueAdapter, VenueBundle
from predagg.ingestion.fields import (
    EXPIRES_AT,
    NO_PRICE,
    TITLE,
    UPDATED_AT,
    VOLUME,
    YES_PRICE,
    FieldProbe,
    keys,
    path,
    string_list,
    unwrap_list,
)
from predagg.ingestion.gateway import UpstreamGateway
from predagg.models import NormalizedMarket

DFLOW_API_BASE = "https://prediction-markets-api.dflow.net/api/v1"
MARKET_URL = "https://kalshi.com/markets"

_TITLE = TITLE.extend(*keys("ticker"))
_MARKET_ID = FieldProbe("market_id", keys("market_id", "marketId", "id", "ticker"))
_YES = YES_PRICE.extend(
    path("outcomes", 0, "price"),
    path("outcomes", 0, "probability"),
    path("yes_ask"),
    path("yes_bid"),
)
_NO = NO_PRICE.extend(
    path("outcomes", 1, "price"),
    path("outcomes", 1, "probability"),
    path("no_ask"),
    path("no_bid"),
)
_CATEGORY = FieldProbe("category", keys("category", "series_ticker", "event_ticker"))


class KalshiAdapter(VenueAdapter):
    """DFlow ``/markets``; field names vary, so every field goes through a probe table."""

    venue_id = "kalshi"
    default_base_url = DFLOW_API_BASE

    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        yes_price = _YES.resolve(raw)
        title = _TITLE.resolve(raw)
        market_id = _MARKET_ID.resolve(raw)
        if yes_price is None or not title or not market_id:
            return None
        return NormalizedMarket(
            venue=self.venue_id,
            market_id=market_id,
            title=title,
            yes_price=yes_price,
            no_price=_NO.resolve(raw),
            volume=VOLUME.resolve(raw) or 0.0,
            updated_at=UPDATED_AT.resolve(raw),
            expires_at=EXPIRES_AT.resolve(raw),
            category=_CATEGORY.resolve(raw),
            tags=string_list(raw.get("tags")),
            description=raw.get("rules_primary") if isinstance(raw.get("rules_primary"), str) else None,
            url=f"{MARKET_URL}/{market_id}",
        )

    async def fetch_bundle(self, gateway: UpstreamGateway, limit: int) -> VenueBundle:
        data = await gateway.get_json("/markets", params={"limit": limit, "page": 1})
        return self.build_bundle(unwrap_list(data))
