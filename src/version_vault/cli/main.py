"""
Main CLI application for VersionVault.

Provides the command-line interface for:
- Extracting version history for one product or a batch file
- Fetching pages through the escalator and classifying blockers
- Discovering release pages from sitemaps and reading feeds
- Comparing versions and inspecting learned patterns
"""

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from version_vault import __version__
from version_vault.config import Settings, load_config
from version_vault.utils.logging import get_logger, setup_logging

app = typer.Typer(
    name="version-vault",
    help="VersionVault - Track software releases from vendor sites",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)

SEVERITY_STYLES = {"high": "red", "medium": "yellow", "low": "dim"}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]VersionVault[/bold blue] v{__version__}")
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
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging",
    ),
) -> None:
    """
    VersionVault - Fetch release pages and extract version history.

    Use 'version-vault --help' for command list.
    """
    setup_logging(level="DEBUG" if verbose else "WARNING")


ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file",
)


@asynccontextmanager
async def _components(settings: Settings, browser: bool) -> AsyncIterator[dict]:
    """Build the shared HTTP client, escalator and stores; tear them down after."""
    from version_vault.acquisition import FetchEscalator, build_fetchers
    from version_vault.browser import BrowserManager, BrowserlessRenderer, PlaywrightRenderer
    from version_vault.storage import Database, PatternRepository, VersionHistoryRepository

    manager = BrowserManager(settings.browser) if browser else None
    db = Database.from_settings(settings.storage)
    async with httpx.AsyncClient(follow_redirects=True) as client:
        try:
            local_renderer = None
            if manager is not None:
                await manager.start()
                local_renderer = PlaywrightRenderer(manager)
            remote_renderer = None
            if settings.browserless.enabled:
                remote_renderer = BrowserlessRenderer.from_settings(settings.browserless)

            fetchers = build_fetchers(
                settings,
                client=client,
                local_renderer=local_renderer,
                remote_renderer=remote_renderer,
            )
            yield {
                "client": client,
                "escalator": FetchEscalator(fetchers, settings.escalation),
                "patterns": PatternRepository(db),
                "history": VersionHistoryRepository(db),
            }
        finally:
            if manager is not None:
                await manager.stop()
            db.close()


def _orchestrator(settings: Settings, parts: dict):
    from version_vault.extraction.orchestrator import ExtractionOrchestrator
    from version_vault.llm import OpenAICompatibleClient
    from version_vault.patterns import PatternLearner

    return ExtractionOrchestrator(
        completion=OpenAICompatibleClient.from_settings(settings.llm, client=parts["client"]),
        escalator=parts["escalator"],
        settings=settings,
        pattern_learner=PatternLearner(parts["patterns"]),
        history_store=parts["history"],
        client=parts["client"],
    )


def _request_from_dict(data: dict):
    from version_vault.extraction.orchestrator import ExtractionRequest
    from version_vault.core.models import ScrapingStrategy
    from version_vault.sources import ForumConfig, SourceKind

    kind = data.get("source_kind") or data.get("source_type")
    return ExtractionRequest(
        name=data["name"],
        website=data["website"],
        version_url=data.get("version_url"),
        description=data.get("description"),
        source_kind=SourceKind(kind) if kind else None,
        strategy=ScrapingStrategy.from_dict(data["strategy"]) if data.get("strategy") else None,
        forum_config=ForumConfig.from_dict(data["forum_config"]) if data.get("forum_config") else None,
    )


def _fail(message: str, error: Exception) -> None:
    console.print(f"[red]Error:[/red] {error}")
    logger.exception(message)
    raise typer.Exit(1)


def _print_outcome(name: str, outcome) -> None:
    info = outcome.info
    validation = outcome.validation

    console.print(Panel(
        f"[bold]Manufacturer:[/bold] {info.manufacturer}\n"
        f"[bold]Category:[/bold] {info.category}\n"
        f"[bold]Current version:[/bold] {info.current_version or '[dim]none[/dim]'}\n"
        f"[bold]Release date:[/bold] {info.release_date or '[dim]unknown[/dim]'}\n"
        f"[dim]Source: {outcome.source_url} ({outcome.source_kind.value}, "
        f"{info.extraction_method}, windowing: {outcome.content_method})[/dim]",
        title=name,
        border_style="green" if validation.valid else "yellow",
    ))

    if info.versions:
        table = Table(title="Versions", show_header=True)
        table.add_column("Version", style="cyan")
        table.add_column("Date", style="dim")
        table.add_column("Type")
        table.add_column("Notes", max_width=60)
        for entry in info.versions:
            notes = entry.notes.splitlines()[0] if entry.notes else ""
            table.add_row(entry.version, entry.release_date or "-", entry.type.value, notes)
        console.print(table)

    style = "green" if validation.valid else "yellow"
    console.print(f"\n[bold]Validation:[/bold] [{style}]{validation.confidence}%[/{style}] {validation.reason}")

    if outcome.anomalies:
        console.print("\n[bold]Anomalies:[/bold]")
        for anomaly in outcome.anomalies:
            color = SEVERITY_STYLES[anomaly.severity.value]
            console.print(f"  [{color}]{anomaly.severity.value.upper()}[/{color}] {anomaly.message}")
    if outcome.requires_manual_review:
        console.print("[bold red]Manual review required[/bold red]")


@app.command()
def extract(
    name: str = typer.Argument(..., help="Product name"),
    website: str = typer.Argument(..., help="Vendor or product home page"),
    version_url: Optional[str] = typer.Option(
        None,
        "--version-url",
        "-u",
        help="Release notes or downloads page",
    ),
    kind: Optional[str] = typer.Option(
        None,
        "--kind",
        "-k",
        help="Source kind: webpage, rss, forum, pdf, sitemap, plaintext",
    ),
    description: Optional[str] = typer.Option(None, "--description", help="Product description"),
    browser: bool = typer.Option(
        False,
        "--browser/--no-browser",
        help="Launch a local browser for rendering steps",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the outcome as JSON"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """
    Extract version history for one product.

    Example:
        version-vault extract "Acme Widget" https://acme.example -u https://acme.example/releases
    """
    try:
        request = _request_from_dict({
            "name": name,
            "website": website,
            "version_url": version_url,
            "description": description,
            "source_kind": kind,
        })
    except ValueError as e:
        console.print(f"[red]Invalid source kind:[/red] {e}")
        raise typer.Exit(1)

    async def _run():
        settings = load_config(config_file)
        async with _components(settings, browser) as parts:
            return await _orchestrator(settings, parts).extract(request)

    try:
        outcome = asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Extraction cancelled by user[/yellow]")
        raise typer.Exit(1)
    except Exception as e:
        _fail("Extraction failed", e)

    if as_json:
        console.print_json(json.dumps(outcome.to_dict()))
    else:
        _print_outcome(name, outcome)


@app.command()
def batch(
    products_file: Path = typer.Argument(
        ...,
        help="YAML list of products (name, website, version_url, ...)",
        exists=True,
        dir_okay=False,
    ),
    browser: bool = typer.Option(False, "--browser/--no-browser", help="Launch a local browser"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """
    Extract every product in a YAML file, a few at a time.
    """
    from version_vault.pipeline import BatchRunner

    try:
        entries = yaml.safe_load(products_file.read_text(encoding="utf-8")) or []
        requests = [_request_from_dict(entry) for entry in entries]
    except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Invalid products file:[/red] {e}")
        raise typer.Exit(1)

    async def _run():
        settings = load_config(config_file)
        async with _components(settings, browser) as parts:
            runner = BatchRunner(_orchestrator(settings, parts).extract, settings.batch)
            return await runner.run(requests)

    try:
        results = asyncio.run(_run())
    except Exception as e:
        _fail("Batch failed", e)

    table = Table(title=f"Batch results ({len(results)} products)", show_header=True)
    table.add_column("Product", style="cyan")
    table.add_column("Version")
    table.add_column("Confidence", justify="right")
    table.add_column("Review")
    for result in results:
        if result.ok:
            outcome = result.outcome
            table.add_row(
                result.request.name,
                outcome.info.current_version or "-",
                f"{outcome.validation.confidence}%",
                "[red]yes[/red]" if outcome.requires_manual_review else "no",
            )
        else:
            table.add_row(result.request.name, f"[red]error: {result.error}[/red]", "-", "-")
    console.print(table)


@app.command()
def detect(
    url: str = typer.Argument(..., help="URL to fetch once and classify"),
) -> None:
    """
    Fetch a URL once with a static request and report any bot blocker.
    """
    from version_vault.acquisition import detect_bot_blocker
    from version_vault.acquisition.identity import USER_AGENTS, realistic_headers

    async def _run():
        async with httpx.AsyncClient(follow_redirects=True) as client:
            try:
                response = await client.get(url, headers=realistic_headers(USER_AGENTS[0]), timeout=30.0)
            except httpx.HTTPError as e:
                return detect_bot_blocker("", error=str(e) or type(e).__name__), None
            return detect_bot_blocker(
                response.text, response.status_code, dict(response.headers)), response.status_code

    detection, status = asyncio.run(_run())

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("HTTP status", str(status) if status is not None else "-")
    table.add_row("Blocked", "[red]yes[/red]" if detection.is_blocked else "[green]no[/green]")
    table.add_row("Blocker", detection.blocker_type.value if detection.blocker_type else "-")
    table.add_row("Confidence", f"{detection.confidence}%")
    table.add_row("Message", detection.message)
    if detection.suggested_action:
        table.add_row("Suggested action", detection.suggested_action)
    console.print(table)


@app.command()
def fetch(
    url: str = typer.Argument(..., help="Page to fetch"),
    browser: bool = typer.Option(False, "--browser/--no-browser", help="Launch a local browser"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the extracted page text to this file",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """
    Fetch a page through the escalator and show how it was obtained.
    """
    from version_vault.sources import fetch_webpage_text

    async def _run():
        settings = load_config(config_file)
        async with _components(settings, browser) as parts:
            return await fetch_webpage_text(
                url, parts["escalator"], min_region_chars=settings.sources.min_region_chars)

    try:
        content = asyncio.run(_run())
    except Exception as e:
        _fail("Fetch failed", e)

    result = content.fetch_result
    methods = " → ".join(m.value for m in result.methods_tried) if result else "-"
    blocker = result.blocker_detected if result else None
    console.print(Panel(
        f"[bold]Success:[/bold] {'[green]yes[/green]' if content.success else '[red]no[/red]'}\n"
        f"[bold]Method:[/bold] {content.method}\n"
        f"[bold]Attempts:[/bold] {result.attempts if result else 0} ({methods})\n"
        f"[bold]Last blocker:[/bold] {blocker.blocker_type.value if blocker and blocker.blocker_type else '-'}\n"
        f"[bold]Text:[/bold] {len(content.text)} chars",
        title=url,
        border_style="green" if content.success else "red",
    ))

    if output:
        output.write_text(content.text, encoding="utf-8")
        console.print(f"[green]✓[/green] Text saved to: {output}")


@app.command()
def sitemap(
    site_url: str = typer.Argument(..., help="Site to search for release pages"),
    max_urls: int = typer.Option(10, "--max", "-n", help="Maximum candidates to show", min=1, max=100),
) -> None:
    """
    Discover likely release-notes pages from a site's sitemaps.
    """
    from version_vault.sources import discover_release_urls

    candidates = asyncio.run(discover_release_urls(site_url, max_urls=max_urls))
    if not candidates:
        console.print("[yellow]No release pages found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Release page candidates", show_header=True)
    table.add_column("Score", justify="right", style="bold")
    table.add_column("URL", style="cyan")
    table.add_column("Last modified", style="dim")
    for candidate in candidates:
        table.add_row(str(candidate.relevance_score), candidate.loc, candidate.lastmod or "-")
    console.print(table)


@app.command()
def feed(
    url: str = typer.Argument(..., help="RSS or Atom feed URL"),
    max_entries: int = typer.Option(10, "--max", "-n", help="Maximum entries", min=1, max=100),
) -> None:
    """
    Read a release feed and list its entries.
    """
    from version_vault.core.exceptions import VersionVaultError
    from version_vault.sources import parse_feed
    from version_vault.sources.http import get_document

    try:
        response = asyncio.run(get_document(url, accept="application/rss+xml, application/atom+xml, */*"))
    except VersionVaultError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    entries = parse_feed(response.text, max_entries=max_entries)
    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        raise typer.Exit(0)

    table = Table(title=url, show_header=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="cyan")
    table.add_column("Version")
    table.add_column("Date", style="dim")
    for i, entry in enumerate(entries, 1):
        table.add_row(str(i), entry.title, entry.version or "-", entry.date or "-")
    console.print(table)


@app.command()
def compare(
    first: str = typer.Argument(..., help="First version"),
    second: str = typer.Argument(..., help="Second version"),
) -> None:
    """
    Compare two version strings.

    Example:
        version-vault compare 19.1.3 9.6.1
    """
    from version_vault.extraction import compare_versions

    result = compare_versions(first, second)
    symbol = {1: ">", 0: "=", -1: "<"}[result]
    console.print(f"{first} [bold]{symbol}[/bold] {second}")


@app.command()
def patterns(
    common: bool = typer.Option(
        False,
        "--common",
        help="Show selectors shared across domains with the same suffix",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """
    List learned per-domain scraping patterns.
    """
    from version_vault.patterns import PatternLearner
    from version_vault.storage import Database, PatternRepository

    settings = load_config(config_file)
    db = Database.from_settings(settings.storage)
    try:
        repo = PatternRepository(db)
        learned = repo.list_all()
        shared = PatternLearner(repo).detect_common_patterns() if common else {}
    finally:
        db.close()

    if not learned:
        console.print("[yellow]No patterns learned yet[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Learned patterns", show_header=True)
    table.add_column("Domain", style="cyan")
    table.add_column("Success", justify="right")
    table.add_column("Method")
    table.add_column("Last success", style="dim")
    table.add_column("Selectors", justify="right")
    for pattern in learned:
        strategy = pattern.strategy
        selector_count = (
            len(strategy.selectors) + len(strategy.release_notes_selectors) + len(strategy.expand_selectors))
        table.add_row(
            pattern.domain,
            f"{pattern.success_rate}%",
            pattern.method.value if pattern.method else "-",
            pattern.last_successful.strftime("%Y-%m-%d") if pattern.last_successful else "-",
            str(selector_count),
        )
    console.print(table)

    if common:
        console.print("\n[bold]Common selectors:[/bold]")
        if not shared:
            console.print("  [dim]none[/dim]")
        for suffix, selectors in sorted(shared.items()):
            console.print(f"  [cyan].{suffix}[/cyan]: {', '.join(selectors)}")


if __name__ == "__main__":
    app()
