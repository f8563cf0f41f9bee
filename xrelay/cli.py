"""Command-line interface for xrelay."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from xrelay import RelayConfig, __version__
from xrelay.client import RelayClient
from xrelay.config import LogFormat, SearchMode
from xrelay.core.cookies import parse_cookie_json
from xrelay.core.exporter import load_tweets, save_image_urls, save_media, save_tweets
from xrelay.core.stream import TweetAccumulator
from xrelay.exceptions import CookieFormatError, ExportFormatError, RelayRequestError
from xrelay.logging import configure_logging
from xrelay.models.events import StreamEvent, TweetEvent

app = typer.Typer(
    name="xrelay",
    help="Stream X/Twitter scraper results over server-sent events",
    add_completion=False,
)
console = Console()

PREVIEW_COUNT = 10


def version_callback(value: bool):
    if value:
        console.print(f"xrelay version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """xrelay - stream X/Twitter scraper results."""
    pass


def _load_cookies(path: Path, config: RelayConfig) -> list[str]:
    """Adapt a cookies.json file locally; exit on format errors."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)

    try:
        return parse_cookie_json(text, legacy_domain=config.legacy_cookie_domain)
    except CookieFormatError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _quiet_config() -> RelayConfig:
    config = RelayConfig(log_format=LogFormat.CONSOLE, log_level="WARNING")
    configure_logging(config)
    return config


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Run the relay server."""
    import uvicorn

    config = RelayConfig()
    configure_logging(config)
    uvicorn.run(
        "xrelay.api:app",
        host=host or config.host,
        port=port or config.port,
        log_config=None,
    )


@app.command()
def fetch(
    username: str = typer.Argument(..., help="Twitter username"),
    cookies: Path = typer.Option(..., "--cookies", "-c", help="cookies.json exported from a browser"),
    max_tweets: Optional[int] = typer.Option(None, "--max", "-m", min=1, help="Maximum tweets to fetch"),
    liked: bool = typer.Option(False, "--liked", help="Fetch liked tweets instead of the timeline"),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Output directory for JSON files"),
    images: bool = typer.Option(False, "--images", help="Also export high-resolution image URLs"),
    media: bool = typer.Option(False, "--media", help="Also export media items"),
    url: Optional[str] = typer.Option(None, "--url", help="Relay base URL"),
):
    """Fetch a profile's tweets through the relay."""
    config = _quiet_config()
    cookie_strings = _load_cookies(cookies, config)
    username = username.lstrip("@")

    async def run():
        async with RelayClient(url, config=config) as client:
            call = client.fetch_liked if liked else client.fetch_tweets
            with console.status("Initializing scraper...") as status:
                return await call(
                    username,
                    cookie_strings,
                    max_tweets=max_tweets,
                    on_event=_status_updater(status),
                )

    accumulator = asyncio.run(run())
    _report(accumulator, output, username, images, media)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    cookies: Path = typer.Option(..., "--cookies", "-c", help="cookies.json exported from a browser"),
    max_tweets: Optional[int] = typer.Option(None, "--max", "-m", min=1, help="Maximum tweets to fetch"),
    mode: SearchMode = typer.Option(SearchMode.LATEST, "--mode", help="Result ordering"),
    name: str = typer.Option("search", "--name", "-n", help="Prefix for exported files"),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Output directory for JSON files"),
    images: bool = typer.Option(False, "--images", help="Also export high-resolution image URLs"),
    media: bool = typer.Option(False, "--media", help="Also export media items"),
    url: Optional[str] = typer.Option(None, "--url", help="Relay base URL"),
):
    """Search tweets through the relay."""
    config = _quiet_config()
    cookie_strings = _load_cookies(cookies, config)

    async def run():
        async with RelayClient(url, config=config) as client:
            with console.status("Initializing scraper...") as status:
                return await client.search(
                    query,
                    cookie_strings,
                    max_tweets=max_tweets,
                    mode=mode,
                    on_event=_status_updater(status),
                )

    accumulator = asyncio.run(run())
    _report(accumulator, output, name, images, media)


@app.command()
def verify(
    cookies: Path = typer.Option(..., "--cookies", "-c", help="cookies.json exported from a browser"),
    url: Optional[str] = typer.Option(None, "--url", help="Relay base URL"),
):
    """Check that cookies belong to a logged-in session."""
    config = _quiet_config()
    cookie_strings = _load_cookies(cookies, config)

    async def run():
        async with RelayClient(url, config=config) as client:
            return await client.verify_session(cookie_strings)

    try:
        logged_in = asyncio.run(run())
    except RelayRequestError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if logged_in:
        console.print("[green]✓[/green] Session is logged in")
    else:
        console.print("[red]✗[/red] Session is not logged in")
        raise typer.Exit(1)


@app.command(name="cookies")
def show_cookies(
    path: Path = typer.Argument(..., help="cookies.json exported from a browser"),
):
    """Print the cookie strings that would be sent to the relay."""
    config = RelayConfig()
    for cookie in _load_cookies(path, config):
        typer.echo(cookie)


@app.command()
def export(
    tweets_file: Path = typer.Argument(..., help="A <name>_tweets.json export"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    media: bool = typer.Option(False, "--media", help="Export media items instead of image URLs"),
):
    """Derive image or media exports from a saved tweet export."""
    try:
        tweets = load_tweets(tweets_file)
    except OSError as e:
        console.print(f"[red]Cannot read {tweets_file}: {e}[/red]")
        raise typer.Exit(1)
    except ExportFormatError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    name = tweets_file.stem.removesuffix("_tweets")
    target = output or tweets_file.parent

    if media:
        path = save_media(tweets, target, name)
    else:
        path = save_image_urls(tweets, target, name)
    console.print(f"[dim]Saved to {path}[/dim]")


def _status_updater(status):
    def on_event(event: StreamEvent, accumulator: TweetAccumulator) -> None:
        if not isinstance(event, TweetEvent):
            status.update(accumulator.status or "Fetching...")

    return on_event


def _report(
    accumulator: TweetAccumulator,
    output: Path,
    name: str,
    images: bool,
    media: bool,
) -> None:
    """Print the outcome and write exports; partial results are kept."""
    if accumulator.status:
        console.print(accumulator.status)
    if accumulator.error:
        console.print(f"[red]{accumulator.error}[/red]")

    if accumulator.tweets:
        _print_preview(accumulator)
        path = save_tweets(accumulator.tweets, output, name)
        console.print(f"[dim]Saved to {path}[/dim]")
        if images:
            path = save_image_urls(accumulator.tweets, output, name)
            console.print(f"[dim]Saved to {path}[/dim]")
        if media:
            path = save_media(accumulator.tweets, output, name)
            console.print(f"[dim]Saved to {path}[/dim]")

    if accumulator.error:
        raise typer.Exit(1)


def _print_preview(accumulator: TweetAccumulator) -> None:
    tweets = accumulator.tweets
    table = Table(title=f"Fetched {len(tweets)} tweets")
    table.add_column("Date", style="dim")
    table.add_column("Text")

    for tweet in tweets[:PREVIEW_COUNT]:
        created = str(tweet.get("createdAt") or "")[:10]
        text = str(tweet.get("text") or "")
        table.add_row(created or "-", text[:80] + "..." if len(text) > 80 else text)

    console.print(table)
    if len(tweets) > PREVIEW_COUNT:
        console.print(f"[dim]+{len(tweets) - PREVIEW_COUNT} more tweets (export to see all)[/dim]")


if __name__ == "__main__":
    app()
