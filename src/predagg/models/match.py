"""MarketMatch, EventGroup - cross-venue correspondences."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from predagg.models.market import NormalizedMarket


class MarketMatch(BaseModel):
    """Markets on different venues believed to denote the same event."""

    markets: list[NormalizedMarket] = Field(..., min_length=2)
    similarity: float = Field(..., ge=0, le=1)
    normalized_title: str

    @model_validator(mode="after")
    def _spans_two_venues(self) -> MarketMatch:
        if len({m.venue for m in self.markets}) < 2:
            raise ValueError("a match must span at least two distinct venues")
        return self

    @property
    def venues(self) -> list[str]:
        return sorted({m.venue for m in self.markets})


class EventGroup(BaseModel):
    """Cluster of pairwise matches sharing one normalized title."""

    key: str
    display_title: str
    markets: list[NormalizedMarket] = Field(default_factory=list)
    max_similarity: float = 0.0
    tags: list[str] = Field(default_factory=list)

    @property
    def venues(self) -> list[str]:
        return sorted({m.venue for m in self.markets})
