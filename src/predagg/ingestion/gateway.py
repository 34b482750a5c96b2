"""Per-venue async HTTP gateway - timeout, retry with backoff, bounded concurrency."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx
import structlog

from predagg.errors import UpstreamError, UpstreamHttpError, UpstreamTimeout, UpstreamUnparseable
from predagg.ingestion.rate_limit import ConcurrencyLimiter, backoff_delay

log = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class UpstreamGateway:
    """GET JSON from one venue.

    Only 429 and 5xx responses are retried (``max_retries`` times, waiting
    ``backoff_base_sec * 2**attempt``). Timeouts, transport errors and other
    statuses fail immediately. Each gateway owns a FIFO limiter so one venue
    never has more than ``max_concurrent`` requests in flight; the slot is
    released while backing off.
    """

    def __init__(
        self,
        venue: str,
        base_url: str,
        *,
        api_key: str | None = None,
        auth_header: str = "Authorization",
        auth_scheme: str | None = "Bearer",
        timeout_sec: float = 7.0,
        max_retries: int = 2,
        backoff_base_sec: float = 0.5,
        max_concurrent: int = 10,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.venue = venue
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.backoff_base_sec = backoff_base_sec
        self.limiter = ConcurrencyLimiter(max_concurrent)
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_sec)
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers[auth_header] = f"{auth_scheme} {api_key}" if auth_scheme else api_key

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _send(self, url: str, params: dict[str, Any] | None) -> httpx.Response:
        async with self.limiter:
            try:
                async with asyncio.timeout(self.timeout_sec):
                    return await self._client.get(url, params=params, headers=self._headers)
            except (TimeoutError, httpx.TimeoutException) as e:
                raise UpstreamTimeout(
                    f"{self.venue} request timed out after {self.timeout_sec:g}s", venue=self.venue
                ) from e
            except httpx.HTTPError as e:
                raise UpstreamError(f"{self.venue} request failed: {e}", venue=self.venue) from e

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = self.url(path)
        attempt = 0
        while True:
            resp = await self._send(url, params)
            if resp.is_success:
                try:
                    return resp.json()
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    raise UpstreamUnparseable(f"{self.venue} returned invalid JSON", venue=self.venue) from e
            error = UpstreamHttpError(
                f"{self.venue} API error: {resp.status_code} {resp.reason_phrase}",
                status=resp.status_code,
                venue=self.venue,
            )
            if not error.retryable or attempt >= self.max_retries:
                log.warning("upstream_failed", venue=self.venue, url=url, status=resp.status_code, attempts=attempt + 1)
                raise error
            delay = backoff_delay(attempt, self.backoff_base_sec)
            log.info("upstream_retry", venue=self.venue, status=resp.status_code, attempt=attempt + 1, delay=delay)
            await self._sleep(delay)
            attempt += 1

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> UpstreamGateway:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
