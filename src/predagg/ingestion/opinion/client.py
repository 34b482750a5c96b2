"""Opinion OpenAPI adapter - market list plus per-token latest prices."""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog

from predagg.errors import ConfigurationMissing, UpstreamError
from predagg.ingestion.base import VenueAdapter, VenueBundle
from predagg.ingestion.fields import (
    DESCRIPTION,
    TITLE,
    VOLUME,
    FieldProbe,
    keys,
    unwrap_list,
)
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.prices import normalize_price, parse_timestamp_ms
from predagg.models import NormalizedMarket, TokenPrice

log = structlog.get_logger(__name__)

OPINION_SITE = "https://opinion.trade"

_MARKET_ID = FieldProbe("market_id", keys("market_id", "marketId", "id"))
_TOPIC_ID = FieldProbe("topic_id", keys("topic_id", "topicId", "topic_id_number"))
_YES_TOKEN = FieldProbe("yes_token_id", keys("yes_token_id", "yesTokenId"))
_NO_TOKEN = FieldProbe("no_token_id", keys("no_token_id", "noTokenId"))
_EXPIRES = FieldProbe("expires_at", keys("cutoffAt", "cutoff_at", "resolvedAt"), convert=parse_timestamp_ms)


def market_url(market_id: str, topic_id: str | None = None) -> str:
    if topic_id:
        return f"{OPINION_SITE}/detail?topicId={topic_id}"
    return f"{OPINION_SITE}/markets/{market_id}"


class OpinionAdapter(VenueAdapter):
    """Opinion lists markets with token ids only; prices come from ``/token/latest-price``.

    A failed price lookup drops that token rather than failing the venue, so the
    edge calculator simply excludes markets with a missing side.
    """

    venue_id = "opinion"
    auth_header = "apikey"
    auth_scheme = None
    requires_api_key = True

    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        market_id = _MARKET_ID.resolve(raw)
        yes_token = _YES_TOKEN.resolve(raw)
        no_token = _NO_TOKEN.resolve(raw)
        if not market_id or not yes_token or not no_token:
            return None
        topic_id = _TOPIC_ID.resolve(raw)
        return NormalizedMarket(
            venue=self.venue_id,
            market_id=market_id,
            title=TITLE.resolve(raw) or f"Opinion Market {market_id}",
            volume=VOLUME.resolve(raw) or 0.0,
            expires_at=_EXPIRES.resolve(raw),
            description=DESCRIPTION.resolve(raw),
            url=market_url(market_id, topic_id),
            yes_token_id=yes_token,
            no_token_id=no_token,
            extra={"topic_id": topic_id, "status": raw.get("status")},
        )

    async def fetch_token_price(self, gateway: UpstreamGateway, token_id: str) -> TokenPrice | None:
        try:
            data = await gateway.get_json("/token/latest-price", params={"token_id": token_id})
        except UpstreamError as e:
            log.warning("token_price_failed", venue=self.venue_id, token_id=token_id, error=str(e))
            return None
        row = data.get("data") if isinstance(data, dict) else None
        if not isinstance(row, dict) or row.get("price") is None:
            return None
        return TokenPrice(
            token_id=str(row.get("token_id") or token_id),
            price=row["price"],
            timestamp=parse_timestamp_ms(row.get("timestamp")),
        )

    async def fetch_bundle(self, gateway: UpstreamGateway, limit: int) -> VenueBundle:
        if not gateway.api_key or not gateway.base_url:
            raise ConfigurationMissing(
                "Opinion API key and base URL must be configured", venue=self.venue_id
            )
        data = await gateway.get_json(
            "/market", params={"status": "activated", "sortBy": 5, "limit": limit}
        )
        bundle = self.build_bundle(unwrap_list(data, envelopes=(("data",), ("data", "list"), ("result", "list"))))
        token_ids = [t for m in bundle.markets for t in (m.yes_token_id, m.no_token_id) if t]
        # The gateway's limiter bounds how many of these run at once.
        prices = await asyncio.gather(*(self.fetch_token_price(gateway, t) for t in token_ids))
        now_ms = int(time.time() * 1000)
        for token_id, price in zip(token_ids, prices):
            if price is not None:
                bundle.prices_by_token[token_id] = price
        for market in bundle.markets:
            yes = bundle.prices_by_token.get(market.yes_token_id or "")
            no = bundle.prices_by_token.get(market.no_token_id or "")
            market.yes_price = _side_price(yes)
            market.no_price = _side_price(no)
            stamps = [p.timestamp for p in (yes, no) if p is not None and p.timestamp]
            market.updated_at = max(stamps) if stamps else now_ms
        return bundle


def _side_price(price: TokenPrice | None) -> float | None:
    return normalize_price(price.price) if price is not None else None
