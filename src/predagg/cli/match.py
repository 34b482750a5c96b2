"""Match subcommand: cross-venue pairs and event groups."""

from __future__ import annotations

import typer

from predagg.cli.common import echo_sources, fmt_price, run_service

app = typer.Typer(help="Match markets across venues")


@app.command("pairs")
def pairs(
    ctx: typer.Context,
    limit: int = typer.Option(None, "--limit", "-n", help="Max markets per venue (default from config)"),
    min_similarity: float = typer.Option(None, "--min-similarity", "-s", help="Match threshold (default from config)"),
) -> None:
    """List matched market pairs, best first, with the cheapest cross-venue leg pair."""
    settings = ctx.obj["settings"]
    n = limit or settings.default_limit
    resp = run_service(settings, lambda svc: svc.matches(n, min_similarity))
    for m in resp.matches:
        a, b = m.markets[0], m.markets[1]
        typer.echo(f"{m.similarity:.3f}  {a.venue}: {a.title[:45]}")
        typer.echo(f"       {b.venue}: {b.title[:45]}")
    if resp.cross_venue_edges:
        typer.echo("Cross-venue legs:")
        for e in resp.cross_venue_edges:
            typer.echo(
                f"  YES {e.yes_venue} {fmt_price(e.yes_price)} + NO {e.no_venue} {fmt_price(e.no_price)}"
                f"  = {e.spread:.4f}  edge {e.edge:.4f}"
            )
    echo_sources(resp.sources)
    typer.echo(f"Total: {len(resp.matches)} matches (threshold {resp.min_similarity:.2f})")


@app.command("events")
def events(
    ctx: typer.Context,
    limit: int = typer.Option(None, "--limit", "-n", help="Max markets per venue (default from config)"),
    min_similarity: float = typer.Option(None, "--min-similarity", "-s", help="Match threshold (default from config)"),
) -> None:
    """Group matches into events quoted on several venues."""
    settings = ctx.obj["settings"]
    n = limit or settings.default_limit
    resp = run_service(settings, lambda svc: svc.events(n, min_similarity))
    for g in resp.events:
        tags = ",".join(g.tags)
        typer.echo(f"{g.display_title[:60]}  [{tags}]  max {g.max_similarity:.3f}")
        for m in g.markets:
            typer.echo(f"  {m.venue:<11} yes {fmt_price(m.yes_price)}  no {fmt_price(m.no_price)}")
    typer.echo(f"Total: {len(resp.events)} events")
