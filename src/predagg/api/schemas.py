"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from predagg.pipeline.service import EdgesResponse, EventsResponse, MarketsResponse, MatchesResponse

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "MarketsResponse",
    "EdgesResponse",
    "MatchesResponse",
    "EventsResponse",
]


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    venues: list[str] = Field(default_factory=list)


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. no_data_available, rate_limited")
