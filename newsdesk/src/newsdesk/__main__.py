"""
Command-line interface for Newsdesk.

Usage:
    python -m newsdesk news              # Aggregate and show the latest articles
    python -m newsdesk news --force      # Ignore the cache
    python -m newsdesk feeds             # List configured feeds after a pass
    python -m newsdesk add-feed URL      # Validate a feed URL
    python -m newsdesk status            # Show service status
    python -m newsdesk serve             # Start the HTTP server
    python -m newsdesk config            # Show current configuration
"""

import json
from datetime import datetime, timezone

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .logging_conf import get_logger, setup_logging
from .server import run_server
from .service import NewsService

console = Console()
logger = get_logger(__name__)


def _build_service(extra_feeds: tuple = ()) -> NewsService:
    service = NewsService()
    service.initialize()
    for url in extra_feeds:
        if not service.add_feed(url):
            console.print(f"[yellow]Skipping feed (validation failed): {url}[/yellow]")
    return service


def _format_ts(ts: int) -> str:
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool):
    """Newsdesk RSS/Atom aggregator CLI."""
    settings = get_settings()
    level = "DEBUG" if debug else settings.log_level
    setup_logging(level=level, json_output=settings.log_json)


@cli.command()
@click.option("--force", is_flag=True, help="Ignore cached entries")
@click.option("--json-output", "-j", is_flag=True, help="Print the raw JSON array")
@click.option("--limit", "-n", type=int, default=20, help="Rows to show")
@click.option("--feed", "-f", "extra_feeds", multiple=True, help="Additional feed URL (repeatable)")
def news(force: bool, json_output: bool, limit: int, extra_feeds: tuple):
    """
    Aggregate all active feeds and show the newest articles.

    Examples:
      python -m newsdesk news
      python -m newsdesk news --json-output
      python -m newsdesk news -f https://hnrss.org/frontpage -n 10
    """
    service = _build_service(extra_feeds)
    try:
        if json_output:
            console.print_json(service.get_latest_news(force_refresh=force))
            return

        articles = service.latest_articles(force_refresh=force)

        table = Table(title=f"Latest News ({len(articles)} articles)")
        table.add_column("Published", style="cyan", no_wrap=True)
        table.add_column("Source", style="yellow")
        table.add_column("Title", style="green")

        for article in articles[:limit]:
            table.add_row(_format_ts(article.published_date), article.source[:30], article.title)

        console.print(table)
    finally:
        service.close()


@cli.command()
@click.option("--feed", "-f", "extra_feeds", multiple=True, help="Additional feed URL (repeatable)")
def feeds(extra_feeds: tuple):
    """Run one pass and list feeds with their health."""
    service = _build_service(extra_feeds)
    try:
        service.collect()

        table = Table(title="Feeds")
        table.add_column("URL", style="cyan")
        table.add_column("Title", style="yellow")
        table.add_column("Active")
        table.add_column("Last Updated")
        table.add_column("Last Error", style="red")

        for feed in service.list_feeds():
            active = "[green]Yes[/green]" if feed.is_active else "[red]No[/red]"
            table.add_row(feed.url, feed.title, active, _format_ts(feed.last_updated), feed.last_error)

        console.print(table)
    finally:
        service.close()


@cli.command("add-feed")
@click.argument("url")
def add_feed(url: str):
    """Validate a feed URL (live fetch + type detection)."""
    url = url.strip()
    service = NewsService()
    try:
        if not service.add_feed(url):
            console.print(f"[bold red]Feed rejected: {url}[/bold red]")
            raise click.Abort()

        feed = service.registry.get(url)
        console.print(f"[green]Feed is valid:[/green] {feed.title or url}")
        if feed.description:
            console.print(f"  {feed.description}")
    finally:
        service.close()


@cli.command()
def status():
    """Show service status."""
    service = _build_service()
    try:
        data = json.loads(service.get_status())

        table = Table(title="Service Status")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        for key, value in data.items():
            table.add_row(key, str(value))

        console.print(table)
    finally:
        service.close()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", "-p", type=int, help="Port to bind to")
@click.option("--with-scheduler", is_flag=True, help="Enable the periodic refresher")
def serve(host: str, port: int, with_scheduler: bool):
    """Start the HTTP server."""
    console.print(Panel("[bold blue]Starting Server[/bold blue]"))

    settings = get_settings()
    port = port or settings.port

    console.print(f"Host: {host}")
    console.print(f"Port: {port}")
    console.print(f"Scheduler: {'Enabled' if with_scheduler else 'Disabled'}")
    console.print()

    run_server(host=host, port=port, with_scheduler=with_scheduler)


@cli.command()
def config():
    """Show current configuration."""
    settings = get_settings()

    console.print(Panel("[bold blue]Current Configuration[/bold blue]"))

    console.print("\n[cyan]Aggregation:[/cyan]")
    console.print(f"  cache_ttl_seconds:     {settings.cache_ttl_seconds}")
    console.print(f"  max_articles_per_feed: {settings.max_articles_per_feed}")
    console.print("  default_feeds:")
    for url in settings.default_feeds:
        console.print(f"    - {url}")

    console.print("\n[cyan]HTTP:[/cyan]")
    console.print(f"  http_timeout:           {settings.http_timeout}")
    console.print(f"  user_agent:             {settings.user_agent}")
    console.print(f"  max_concurrent_fetches: {settings.max_concurrent_fetches}")

    console.print("\n[cyan]Scheduler:[/cyan]")
    console.print(f"  enable_scheduler:         {settings.enable_scheduler}")
    console.print(f"  refresh_interval_seconds: {settings.refresh_interval_seconds}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
