"""Canonical schema (Pydantic) - Market, Edge, Match."""

from predagg.models.edge import CrossVenueEdge, MarketEdge, PricedSide
from predagg.models.market import MarketQuote, NormalizedMarket, SourceStatus, TokenPrice
from predagg.models.match import EventGroup, MarketMatch

__all__ = [
    "MarketQuote",
    "NormalizedMarket",
    "TokenPrice",
    "SourceStatus",
    "MarketEdge",
    "PricedSide",
    "CrossVenueEdge",
    "MarketMatch",
    "EventGroup",
]
