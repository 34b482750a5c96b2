"""Markets subcommand: list quotes per venue."""

from __future__ import annotations

from collections import defaultdict

import typer

from predagg.cli.common import echo_sources, fmt_price, run_service

app = typer.Typer(help="Fetch and list market quotes across venues")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    limit: int = typer.Option(None, "--limit", "-n", help="Max markets per venue (default from config)"),
) -> None:
    """Fetch one cycle from every enabled venue and print YES prices grouped by venue."""
    settings = ctx.obj["settings"]
    n = limit or settings.markets_default_limit
    resp = run_service(settings, lambda svc: svc.markets(n))
    by_venue = defaultdict(list)
    for q in resp.quotes:
        by_venue[q.venue].append(q)
    for venue, quotes in sorted(by_venue.items()):
        typer.echo(f"{venue} ({len(quotes)})")
        for q in quotes:
            typer.echo(f"  {fmt_price(q.price)}  {q.title[:70]}")
    typer.echo("Sources:")
    echo_sources(resp.sources)
    typer.echo(f"Total: {len(resp.quotes)} quotes")
