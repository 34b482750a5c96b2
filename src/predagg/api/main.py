"""FastAPI app - aggregated markets, edges, cross-venue matches and events."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predagg import __version__
from predagg.api.rate_limit import FixedWindowLimiter, client_key
from predagg.api.schemas import (
    EdgesResponse,
    ErrorResponse,
    EventsResponse,
    HealthResponse,
    MarketsResponse,
    MatchesResponse,
)
from predagg.config.settings import Settings, get_settings
from predagg.errors import NoDataAvailable, PredAggError
from predagg.pipeline.service import MarketService

log = structlog.get_logger(__name__)

# Longer query strings are treated as missing.
MAX_LIMIT_PARAM_LEN = 10

ERROR_RESPONSES = {
    429: {"model": ErrorResponse, "description": "Rate limited"},
    502: {"model": ErrorResponse, "description": "Upstream failure"},
    503: {"model": ErrorResponse, "description": "No fresh or stale data available"},
}


def parse_limit(raw: str | None, default: int = 20, minimum: int = 5, maximum: int = 40) -> int:
    """Clamp a raw ``limit`` query value; missing, over-long or non-integer values give `default`."""
    if raw is None or len(raw) > MAX_LIMIT_PARAM_LEN:
        return default
    try:
        parsed = int(raw.strip())
    except ValueError:
        return default
    return max(minimum, min(maximum, parsed))


def _error_json(code: str, message: str, status_code: int = 404, headers: dict[str, str] | None = None) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
        headers=headers,
    )


def create_app(service: MarketService | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app. Without `service`, one is created from settings at startup and closed at shutdown."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        app.state.service = service or MarketService.from_settings(settings)
        yield
        if owned:
            await app.state.service.aclose()

    app = FastAPI(title="PredAgg API", version=__version__, lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"], allow_headers=["*"])
    limiter = FixedWindowLimiter(settings.rate_limit_requests, settings.rate_limit_window_sec)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)
        decision = limiter.check(client_key(request))
        headers = decision.headers(limiter.now())
        if not decision.allowed:
            log.info("rate_limited", client=client_key(request), path=request.url.path)
            return _error_json("rate_limited", "Too many requests", 429, headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response

    @app.exception_handler(NoDataAvailable)
    async def no_data(request: Request, exc: NoDataAvailable) -> JSONResponse:
        return _error_json(exc.code, exc.message, 503)

    @app.exception_handler(PredAggError)
    async def upstream_failure(request: Request, exc: PredAggError) -> JSONResponse:
        log.warning("request_failed", path=request.url.path, code=exc.code, error=exc.message)
        return _error_json(exc.code, exc.message, 502)

    def _service(request: Request) -> MarketService:
        return request.app.state.service

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", venues=settings.enabled_venues)

    @app.get("/markets", response_model=MarketsResponse, responses=ERROR_RESPONSES)
    async def markets(request: Request, limit: str | None = Query(None)) -> MarketsResponse:
        """Quotes from all venues that answered in the latest fetch cycle."""
        n = parse_limit(limit, settings.markets_default_limit, settings.min_limit, settings.max_limit)
        return await _service(request).markets(n)

    @app.get("/edges", response_model=EdgesResponse, responses=ERROR_RESPONSES)
    async def edges(request: Request, limit: str | None = Query(None)) -> EdgesResponse:
        """Per-market YES+NO complement edges, highest volume first."""
        n = parse_limit(limit, settings.default_limit, settings.min_limit, settings.max_limit)
        return await _service(request).edges(n)

    @app.get("/matches", response_model=MatchesResponse, responses=ERROR_RESPONSES)
    async def matches(
        request: Request,
        limit: str | None = Query(None),
        min_similarity: float | None = Query(None, ge=0, le=1),
    ) -> MatchesResponse:
        n = parse_limit(limit, settings.default_limit, settings.min_limit, settings.max_limit)
        return await _service(request).matches(n, min_similarity)

    @app.get("/events", response_model=EventsResponse, responses=ERROR_RESPONSES)
    async def events(
        request: Request,
        limit: str | None = Query(None),
        min_similarity: float | None = Query(None, ge=0, le=1),
    ) -> EventsResponse:
        n = parse_limit(limit, settings.default_limit, settings.min_limit, settings.max_limit)
        return await _service(request).events(n, min_similarity)

    return app


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    config_dir: Path | None = None,
) -> None:
    import uvicorn

    uvicorn.run(create_app(settings=get_settings(profile, config_dir)), host=host, port=port, reload=False)
