"""
Knowscroll CLI - Command line interface for the content feed.

Usage:
    knowscroll --help                     Show all commands
    knowscroll providers                  List enabled providers
    knowscroll aggregate                  Fetch one mixed batch
    knowscroll aggregate -s arxiv -q rust Search a single provider
    knowscroll serve                      Start the API server
"""

import asyncio

import typer

app = typer.Typer(
    name="knowscroll",
    help="Knowscroll CLI - content discovery feed",
    no_args_is_help=True,
)


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


def _load_aggregator():
    """Build the aggregator from config, exiting on invalid configuration."""
    from knowscroll.core.exceptions import ConfigError
    from knowscroll.ingest.orchestrator import create_aggregator

    try:
        return create_aggregator()
    except ConfigError as e:
        _print_error(f"Invalid configuration: {e}")
        raise typer.Exit(1) from e


@app.command()
def providers():
    """List enabled providers and whether they require an excerpt."""
    aggregator = _load_aggregator()
    for fetcher in aggregator.fetchers.values():
        excerpt = "excerpt required" if fetcher.excerpt_required else "excerpt optional"
        typer.echo(f"  {fetcher.source_name:<10} {fetcher.category.value:<15} {excerpt}")


@app.command()
def aggregate(
    source: str | None = typer.Option(None, "--source", "-s", help="Query a single provider"),
    search: str | None = typer.Option(None, "--search", "-q", help="Search term"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum items to print"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print excerpts and URLs, log at DEBUG"
    ),
):
    """Run one aggregation and print the results."""
    from knowscroll.core.logging import setup_logging

    setup_logging(level="DEBUG" if verbose else None)
    aggregator = _load_aggregator()

    if source and source not in aggregator.fetchers:
        _print_error(f"Unknown provider: {source}")
        typer.echo(f"   Valid options: {', '.join(aggregator.provider_names)}")
        raise typer.Exit(1)

    items = asyncio.run(aggregator.aggregate(source, search))
    if not items:
        typer.echo("No items found")
        return

    for item in items[:limit]:
        typer.echo(f"[{item.provider.value}] {item.title}")
        if verbose:
            if item.excerpt:
                typer.echo(f"    {item.excerpt}")
            typer.echo(f"    {item.canonical_url}")

    typer.echo(f"\n{len(items)} items")


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable hot reload"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
):
    """Start the API server."""
    import uvicorn

    uvicorn.run("knowscroll.main:app", host="0.0.0.0", port=port, reload=reload)


if __name__ == "__main__":
    app()
