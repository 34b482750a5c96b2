"""Shared helpers for subcommands that run one fetch cycle."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import typer

from predagg.config.settings import Settings
from predagg.errors import PredAggError
from predagg.pipeline.service import MarketService

T = TypeVar("T")


def run_service(settings: Settings, call: Callable[[MarketService], Awaitable[T]]) -> T:
    """Build a service from settings, run one call, close it. Errors exit with code 1."""

    async def _run() -> T:
        service = MarketService.from_settings(settings)
        try:
            return await call(service)
        finally:
            await service.aclose()

    try:
        return asyncio.run(_run())
    except PredAggError as e:
        typer.echo(f"Error ({e.code}): {e.message}", err=True)
        raise typer.Exit(1) from e


def echo_sources(sources) -> None:
    for s in sources:
        status = f"ok  {s.markets} markets" if s.ok else f"FAILED ({s.code}) {s.error}"
        typer.echo(f"  [{s.venue}] {status}")


def fmt_price(price: float | None) -> str:
    return f"{price:.3f}" if price is not None else "  -  "
