"""Edges subcommand: per-market YES+NO complement edges."""

from __future__ import annotations

import typer

from predagg.cli.common import echo_sources, run_service

app = typer.Typer(help="Show buy-both edges (1 - (yes + no)) per market")


@app.callback(invoke_without_command=True)
def edges(
    ctx: typer.Context,
    limit: int = typer.Option(None, "--limit", "-n", help="Max markets per venue (default from config)"),
    only_positive: bool = typer.Option(False, "--positive", help="Only markets with edge > 0"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    n = max(settings.min_limit, min(settings.max_limit, limit or settings.default_limit))
    resp = run_service(settings, lambda svc: svc.edges(n))
    rows = [e for e in resp.edges if e.edge > 0] if only_positive else resp.edges
    for e in rows:
        typer.echo(
            f"  {e.venue:<11} yes {e.yes.price:.3f}  no {e.no.price:.3f}  sum {e.sum:.4f}"
            f"  edge {e.edge:.4f}  vol {e.volume:>12.0f}  {e.title[:50]}"
        )
    typer.echo("Sources:")
    echo_sources(resp.sources)
    typer.echo(f"Total: {len(rows)} markets")
