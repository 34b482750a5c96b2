"""Upstream gateway retry/timeout behaviour and the FIFO concurrency limiter."""

import asyncio

import httpx
import pytest

from predagg.errors import UpstreamHttpError, UpstreamTimeout, UpstreamUnparseable
from predagg.ingestion.gateway import UpstreamGateway
from predagg.ingestion.rate_limit import ConcurrencyLimiter, backoff_delay


def _gateway(handler, sleeps=None, **kwargs):
    async def fake_sleep(delay):
        if sleeps is not None:
            sleeps.append(delay)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamGateway("testvenue", "https://venue.test/api", client=client, sleep=fake_sleep, **kwargs)


def _sequence(*statuses):
    calls = []

    def handler(request):
        calls.append(request)
        status = statuses[min(len(calls), len(statuses)) - 1]
        return httpx.Response(status, json={"ok": status == 200})

    return handler, calls


@pytest.mark.asyncio
async def test_429_retried_with_exponential_backoff():
    handler, calls = _sequence(429, 429, 200)
    sleeps = []
    gateway = _gateway(handler, sleeps)
    assert await gateway.get_json("/markets", params={"limit": 5}) == {"ok": True}
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]
    assert calls[0].url.params["limit"] == "5"
    assert str(calls[0].url).startswith("https://venue.test/api/markets")


@pytest.mark.asyncio
async def test_retries_exhausted_raises_http_error():
    handler, calls = _sequence(503)
    sleeps = []
    gateway = _gateway(handler, sleeps)
    with pytest.raises(UpstreamHttpError) as excinfo:
        await gateway.get_json("/markets")
    assert excinfo.value.status == 503
    assert excinfo.value.retryable
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


@pytest.mark.asyncio
async def test_404_never_retried():
    handler, calls = _sequence(404)
    sleeps = []
    gateway = _gateway(handler, sleeps)
    with pytest.raises(UpstreamHttpError) as excinfo:
        await gateway.get_json("/missing")
    assert excinfo.value.status == 404
    assert not excinfo.value.retryable
    assert len(calls) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_slow_call_times_out_without_retry():
    calls = []

    async def handler(request):
        calls.append(request)
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    gateway = _gateway(handler, timeout_sec=0.05)
    with pytest.raises(UpstreamTimeout):
        await gateway.get_json("/markets")
    assert len(calls) == 1
    assert gateway.limiter.inflight == 0


@pytest.mark.asyncio
async def test_transport_timeout_maps_to_upstream_timeout():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(UpstreamTimeout):
        await _gateway(handler).get_json("/markets")


@pytest.mark.asyncio
async def test_invalid_json_is_unparseable():
    gateway = _gateway(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(UpstreamUnparseable):
        await gateway.get_json("/markets")


@pytest.mark.asyncio
async def test_auth_headers():
    seen = []

    def handler(request):
        seen.append(dict(request.headers))
        return httpx.Response(200, json=[])

    await _gateway(handler, api_key="secret").get_json("/x")
    await _gateway(handler, api_key="secret", auth_header="apikey", auth_scheme=None).get_json("/x")
    assert seen[0]["authorization"] == "Bearer secret"
    assert seen[1]["apikey"] == "secret"
    assert "authorization" not in seen[1]


@pytest.mark.asyncio
async def test_gateway_bounds_in_flight_requests():
    active = 0
    peak = 0

    async def handler(request):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return httpx.Response(200, json={})

    gateway = _gateway(handler, max_concurrent=2)
    await asyncio.gather(*(gateway.get_json(f"/m/{i}") for i in range(6)))
    assert peak == 2


def test_backoff_delay():
    assert backoff_delay(0) == 0.5
    assert backoff_delay(1) == 1.0
    assert backoff_delay(2, base_delay=1.0) == 4.0


@pytest.mark.asyncio
async def test_limiter_releases_waiters_in_fifo_order():
    limiter = ConcurrencyLimiter(1)
    await limiter.acquire()
    order = []

    async def waiter(i):
        async with limiter:
            order.append(i)

    tasks = [asyncio.create_task(waiter(i)) for i in range(3)]
    await asyncio.sleep(0)
    assert limiter.waiting == 3
    limiter.release()
    await asyncio.gather(*tasks)
    assert order == [0, 1, 2]
    assert limiter.inflight == 0


@pytest.mark.asyncio
async def test_cancelled_waiter_leaves_queue():
    limiter = ConcurrencyLimiter(1)
    await limiter.acquire()
    task = asyncio.create_task(limiter.acquire())
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert limiter.waiting == 0
    limiter.release()
    assert limiter.inflight == 0


def test_limiter_rejects_zero():
    with pytest.raises(ValueError):
        ConcurrencyLimiter(0)
