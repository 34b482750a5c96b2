"""Offline mock venue - deterministic multi-venue quotes for development and tests."""

from __future__ import annotations

import time
from typing import Any

from predagg.ingestion.base import VenueAdapter, VenueBundle
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.prices import normalize_price
from predagg.models import NormalizedMarket

_DAY_MS = 86_400_000

# (venue, market_id, title, yes, no, volume, days_to_expiry)
MOCK_ROWS: list[tuple[str, str, str, float, float, float, int]] = [
    ("polymarket", "pm-btc-100k", "Will BTC exceed $100K by Dec 2025?", 0.45, 0.50, 125_000.0, 60),
    ("kalshi", "KXBTC-25DEC-100K", "BTC above 100k end of 2025", 0.48, 0.54, 88_000.0, 60),
    ("opinion", "op-btc-100k", "Bitcoin above $100K by December 2025?", 0.46, 0.52, 21_000.0, 61),
    ("polymarket", "pm-fed-cut-dec", "Fed rate cut in December?", 0.62, 0.40, 310_000.0, 30),
    ("kalshi", "KXFED-DEC-CUT", "Fed rate cut in December?", 0.60, 0.41, 95_000.0, 30),
    ("predictfun", "pf-fed-cut", "Will the Fed cut rates in December?", 0.59, 0.43, 12_500.0, 31),
    ("polymarket", "pm-trump-2028", "Will Trump win the 2028 election?", 0.08, 0.93, 54_000.0, 900),
    ("limitless", "ll-eth-5k", "ETH above $5,000 by March 2026?", 0.22, 0.80, 7_300.0, 150),
]


class MockAdapter(VenueAdapter):
    """Returns the fixed ``MOCK_ROWS`` set; each row keeps its own venue so matching has work to do."""

    venue_id = "mock"
    uses_network = False

    def __init__(self, now_ms: int | None = None) -> None:
        self.now_ms = now_ms

    def rows(self) -> list[dict[str, Any]]:
        now_ms = self.now_ms if self.now_ms is not None else int(time.time() * 1000)
        return [
            {
                "venue": venue,
                "id": market_id,
                "title": title,
                "yes": yes,
                "no": no,
                "volume": volume,
                "expiresAt": now_ms + days * _DAY_MS,
                "updatedAt": now_ms,
            }
            for venue, market_id, title, yes, no, volume, days in MOCK_ROWS
        ]

    def normalize_market(self, raw: dict[str, Any]) -> NormalizedMarket | None:
        return NormalizedMarket(
            venue=raw["venue"],
            market_id=raw["id"],
            title=raw["title"],
            yes_price=normalize_price(raw["yes"]),
            no_price=normalize_price(raw["no"]),
            volume=raw["volume"],
            updated_at=raw["updatedAt"],
            expires_at=raw["expiresAt"],
            url=f"https://example.invalid/{raw['venue']}/{raw['id']}",
        )

    async def fetch_bundle(self, gateway: UpstreamGateway | None, limit: int) -> VenueBundle:
        return self.build_bundle(self.rows()[:limit], now_ms=self.now_ms)
