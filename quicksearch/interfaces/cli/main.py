"""
CLI Main - Typer-based command-line interface.

Usage:
    quicksearch init --demo
    quicksearch search "invoice" --page records
    quicksearch recent 1 --page records
    quicksearch purge --days 56
    quicksearch serve
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from quicksearch.domains.search import DashboardItem, Entity, SearchableItem

app = typer.Typer(
    name="quicksearch",
    help="QuickSearch - Multi-source search for administrative dashboards",
    add_completion=False,
)
console = Console()

DEMO_RECORDS = [
    ("Quarterly invoice Q1", "invoice", "publish"),
    ("Quarterly invoice Q2", "invoice", "draft"),
    ("Onboarding checklist", "page", "publish"),
    (None, "page", "publish"),
    ("Release notes 1.0", "record", "private"),
]

DEMO_ACCOUNTS = [
    ("admin", "Site Admin", "admin@example.com"),
    ("jdoe", "Jamie Doe", "jamie@example.com"),
    ("editor", None, "editor@example.com"),
]


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def init(
    db_path: Path | None = typer.Option(None, "--db", "-d", help="Database path"),
    demo: bool = typer.Option(False, "--demo", help="Insert sample records and accounts"),
) -> None:
    """Initialize the QuickSearch database."""
    asyncio.run(_init_async(db_path, demo))


async def _init_async(db_path: Path | None, demo: bool) -> None:
    """Async initialization."""
    from quicksearch.adapters.sqlite import SQLiteRepository
    from quicksearch.config import get_settings

    settings = get_settings()
    repo = SQLiteRepository(db_path or settings.db_path)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Creating schema...", total=2 if demo else 1)
        await repo.initialize()
        progress.advance(task)

        if demo:
            progress.update(task, description="Inserting sample data...")
            for title, content_type, status in DEMO_RECORDS:
                await repo.insert_record(title, content_type=content_type, status=status)
            for login, display_name, email in DEMO_ACCOUNTS:
                await repo.insert_account(login, display_name=display_name, email=email)
            progress.advance(task)

    counts = await repo.get_counts()
    await repo.close()

    table = Table(title="Database")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="green", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))

    console.print("\n[green]Initialization complete![/green]")
    console.print(f"[dim]Database: {repo.db_path}[/dim]\n")
    console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    pages: list[str] = typer.Option([], "--page", "-p", help="Visible source page (repeatable)"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of results to show"),
) -> None:
    """Search every enabled source."""
    asyncio.run(_search_async(query, pages, limit))


async def _search_async(query: str, pages: Sequence[str], limit: int) -> None:
    """Async search implementation."""
    from quicksearch.adapters.sqlite import SQLiteRepository
    from quicksearch.config import get_settings
    from quicksearch.domains.orchestration import QuickSearchService

    settings = get_settings()
    repo = SQLiteRepository(settings.db_path)
    service = QuickSearchService.from_settings(repo, settings)

    try:
        response = await service.search(query, pages)
    finally:
        await repo.close()

    console.print(f"\n[yellow]Searching for:[/yellow] {query}\n")
    _print_items(response.items[:limit], title="Results")
    if response.has_more or len(response.items) > limit:
        console.print("[dim]More results available[/dim]")


@app.command()
def recent(
    actor_id: int = typer.Argument(..., help="Actor (user) ID"),
    pages: list[str] = typer.Option([], "--page", "-p", help="Visible source page (repeatable)"),
) -> None:
    """Show the items preloaded for an actor."""
    asyncio.run(_recent_async(actor_id, pages))


async def _recent_async(actor_id: int, pages: Sequence[str]) -> None:
    """Async preload implementation."""
    from quicksearch.adapters.sqlite import SQLiteRepository
    from quicksearch.config import QuickSearchError, get_settings
    from quicksearch.domains.orchestration import QuickSearchService

    settings = get_settings()
    repo = SQLiteRepository(settings.db_path)
    service = QuickSearchService.from_settings(repo, settings)

    try:
        items = await service.preload(actor_id, pages)
    except QuickSearchError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    finally:
        await repo.close()

    _print_items(items, title=f"Recent items for actor {actor_id}")


@app.command()
def purge(
    days: int | None = typer.Option(None, "--days", help="Staleness threshold in days"),
) -> None:
    """Delete stale dashboard items and crawl records now."""
    asyncio.run(_purge_async(days))


async def _purge_async(days: int | None) -> None:
    """Async purge implementation."""
    from quicksearch.adapters.sqlite import SQLiteRepository
    from quicksearch.config import get_settings
    from quicksearch.domains.orchestration import QuickSearchService

    settings = get_settings()
    repo = SQLiteRepository(settings.db_path)
    service = QuickSearchService.from_settings(repo, settings)

    try:
        await service.purge_stale_entries(days)
        counts = await repo.get_counts()
    finally:
        await repo.close()

    threshold = settings.staleness_threshold_days if days is None else days
    console.print(f"[green]Purged entries older than {threshold} days[/green]")
    console.print(
        f"[dim]{counts['qs_items']} dashboard items, "
        f"{counts['qs_crawler']} crawl records remain[/dim]"
    )


def _print_items(items: Sequence[SearchableItem], title: str) -> None:
    """Render items as a table."""
    if not items:
        console.print("[dim]No items[/dim]")
        return

    table = Table(title=title)
    table.add_column("Type", style="cyan")
    table.add_column("Label", style="bold")
    table.add_column("Location")
    table.add_column("Link", style="dim")

    for item in items:
        if isinstance(item, Entity):
            kind, link = item.kind, item.url
        elif isinstance(item, DashboardItem):
            kind, link = "dashboard", item.target.url or item.source_page
        else:
            kind, link = "", ""
        table.add_row(kind, item.label, " > ".join(item.location), link)

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    console.print("\n[green]Starting QuickSearch API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "quicksearch.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from quicksearch import __version__

    console.print(f"QuickSearch v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
