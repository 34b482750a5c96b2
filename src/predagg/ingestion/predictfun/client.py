"""Predict.fun adapter - Bearer-authenticated market list."""

from __future__ import annotations

from typing import Any

from predagg.errors import ConfigurationMissing
from predagg.ingestion.base import VenueAdapter, VenueBundle
from predagg.ingestion.fields import (
    CATEGORY,
    DESCRIPTION,
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

PREDICTFUN_API_BASE = "https://api.predict.fun"
MARKET_URL = "https://predict.fun/market"

_MARKET_ID = FieldProbe("market_id", keys("id", "marketId", "market_id", "slug"))
_TITLE = FieldProbe("title", keys("question", "title", "market_title", "marketTitle", "name"))
_YES = YES_PRICE.extend(
    path("currentPrice"),
    path("outcomes", 0, "price"),
    path("outcomes", 0, "probability"),
    path("tokens", 0, "price"),
)
_NO = NO_PRICE.extend(
    path("outcomes", 1, "price"),
    path("outcomes", 1, "probability"),
    path("tokens", 1, "price"),
)
_URL = FieldProbe("url", keys("url", "link"))


class PredictFunAdapter(VenueAdapter):
    venue_id = "predictfun"
    default_base_url = PREDICTFUN_API_BASE
    requires_api_key = True

    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        yes_price = _YES.resolve(raw)
        title = _TITLE.resolve(raw)
        market_id = _MARKET_ID.resolve(raw)
        if yes_price is None or not title or not market_id:
            return None
        slug = raw.get("slug") or market_id
        return NormalizedMarket(
            venue=self.venue_id,
            market_id=market_id,
            title=title,
            yes_price=yes_price,
            no_price=_NO.resolve(raw),
            volume=VOLUME.resolve(raw) or 0.0,
            updated_at=UPDATED_AT.resolve(raw),
            expires_at=EXPIRES_AT.resolve(raw),
            category=CATEGORY.resolve(raw),
            tags=string_list(raw.get("tags")),
            description=DESCRIPTION.resolve(raw),
            url=_URL.resolve(raw) or f"{MARKET_URL}/{slug}",
        )

    async def fetch_bundle(self, gateway: UpstreamGateway, limit: int) -> VenueBundle:
        if not gateway.api_key:
            raise ConfigurationMissing("PREDICTFUN_API_KEY is not set", venue=self.venue_id)
        data = await gateway.get_json("/markets", params={"limit": limit})
        return self.build_bundle(unwrap_list(data, envelopes=(("data",), ("result",), ("markets",), ("items",))))
