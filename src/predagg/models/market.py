"""MarketQuote, NormalizedMarket, TokenPrice - canonical market entities."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class MarketQuote(BaseModel):
    """Single-price view of a market on one venue (YES probability)."""

    venue: str
    title: str
    price: float | None = Field(None, ge=0, le=1, description="YES probability in [0, 1]")
    url: str | None = None
    source_id: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    expires_at: int | None = None  # ms epoch
    updated_at: int | None = None  # ms epoch


class NormalizedMarket(BaseModel):
    """Venue-agnostic binary market after normalization."""

    venue: str
    market_id: str
    title: str
    yes_price: float | None = Field(None, ge=0, le=1)
    no_price: float | None = Field(None, ge=0, le=1)
    volume: float = 0.0
    updated_at: int | None = None  # ms epoch
    expires_at: int | None = None  # ms epoch
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    url: str | None = None
    # Keys into the cycle's prices_by_token lookup
    yes_token_id: str | None = None
    no_token_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def dedupe_key(self) -> str:
        return f"{self.venue}-{self.market_id}"

    def to_quote(self) -> MarketQuote:
        return MarketQuote(
            venue=self.venue,
            title=self.title,
            price=self.yes_price,
            url=self.url,
            source_id=self.market_id,
            category=self.category,
            tags=list(self.tags),
            description=self.description,
            expires_at=self.expires_at,
            updated_at=self.updated_at,
        )


class TokenPrice(BaseModel):
    """Latest raw price for one outcome token. Price is kept as received and parsed later."""

    token_id: str
    price: str | float | None = None
    timestamp: int | None = None  # ms epoch


class SourceStatus(BaseModel):
    """Outcome of one venue's fetch in a cycle."""

    venue: str
    ok: bool
    markets: int = 0
    skipped: int = 0
    error: str | None = None
    code: str | None = None
