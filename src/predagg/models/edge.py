"""MarketEdge, CrossVenueEdge - complement pricing results."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PricedSide(BaseModel):
    """One outcome leg: token reference and parsed price."""

    token_id: str
    price: float = Field(..., ge=0, le=1)


class MarketEdge(BaseModel):
    """YES+NO complement sum and buy-both edge for one market."""

    market_id: str
    title: str
    venue: str
    url: str | None = None
    yes: PricedSide
    no: PricedSide
    sum: float
    edge: float = Field(..., ge=0, description="max(0, 1 - sum)")
    volume: float = 0.0
    updated_at: int  # ms epoch


class CrossVenueEdge(BaseModel):
    """Cheapest YES-on-one-venue plus NO-on-the-other leg pair for a matched market pair."""

    yes_venue: str
    yes_market_id: str
    yes_price: float = Field(..., ge=0, le=1)
    no_venue: str
    no_market_id: str
    no_price: float = Field(..., ge=0, le=1)
    spread: float
    edge: float = Field(..., ge=0)
    similarity: float
