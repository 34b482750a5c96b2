"""Limitless Exchange adapter - active markets with a ``prices`` array."""

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
    string_list,
    unwrap_list,
)
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.prices import normalize_price
from predagg.models import NormalizedMarket

LIMITLESS_API_BASE = "https://api.limitless.exchange"
MARKET_URL = "https://limitless.exchange/markets"
# The active-markets endpoint rejects larger pages.
MAX_PAGE_SIZE = 25

_MARKET_ID = FieldProbe("market_id", keys("id", "address", "slug"))
_ENTRY_PRICE = FieldProbe(
    "entry_price",
    keys("price", "value", "probability", "yesPrice", "yes_price", "yes"),
    convert=normalize_price,
)


def _price_entry(entry: Any) -> float | None:
    if isinstance(entry, dict):
        return _ENTRY_PRICE.resolve(entry)
    return normalize_price(entry)


def extract_prices(raw: dict[str, Any]) -> tuple[float | None, float | None]:
    """YES/NO from the ``prices`` array when present, else from scalar fields."""
    prices = raw.get("prices") if isinstance(raw.get("prices"), list) else []
    parsed = [_price_entry(p) for p in prices]
    yes = parsed[0] if parsed else None
    no = parsed[1] if len(parsed) > 1 else None
    if yes is None:
        yes = YES_PRICE.resolve(raw)
    if no is None:
        no = NO_PRICE.resolve(raw)
    return yes, no


class LimitlessAdapter(VenueAdapter):
    venue_id = "limitless"
    default_base_url = LIMITLESS_API_BASE

    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        yes_price, no_price = extract_prices(raw)
        market_id = _MARKET_ID.resolve(raw)
        title = TITLE.resolve(raw)
        if yes_price is None or not market_id or not title:
            return None
        slug = raw.get("slug")
        return NormalizedMarket(
            venue=self.venue_id,
            market_id=market_id,
            title=title,
            yes_price=yes_price,
            no_price=no_price,
            volume=VOLUME.resolve(raw) or 0.0,
            updated_at=UPDATED_AT.resolve(raw),
            expires_at=EXPIRES_AT.resolve(raw),
            category=next(iter(string_list(raw.get("categories"))), None),
            tags=string_list(raw.get("tags")),
            description=raw.get("description") if isinstance(raw.get("description"), str) else None,
            url=f"{MARKET_URL}/{slug}" if slug else None,
        )

    async def fetch_bundle(self, gateway: UpstreamGateway, limit: int) -> VenueBundle:
        data = await gateway.get_json("/markets/active", params={"limit": min(limit, MAX_PAGE_SIZE)})
        rows = unwrap_list(data, envelopes=(("data", "data"), ("data",), ("list",)))
        return self.build_bundle(rows)
