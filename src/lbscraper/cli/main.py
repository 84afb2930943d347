"""lbscraper CLI - run the API server or scrape a profile from the terminal."""

import asyncio
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from lbscraper.config import Config, cfg
from lbscraper.jobs.models import Job, JobStatus
from lbscraper.jobs.orchestrator import ScrapeOrchestrator, normalize_username
from lbscraper.jobs.store import JobStore
from lbscraper.scraper.playwright_scraper import BrowserManager, ScraperConfig, cleanup
from lbscraper.utils.export import write_films_csv, write_job_json
from lbscraper.utils.log import configure_logging

logger = structlog.get_logger(logger_name=__name__)
console = Console()

app = typer.Typer(
    name="lbscraper",
    help="lbscraper CLI - Letterboxd profile scraper",
    no_args_is_help=True,
)


class SelectorScheme(str, Enum):
    current = "current"
    legacy = "legacy"


@app.callback()
def cli_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logs.")
    ] = False,
):
    """lbscraper CLI - Letterboxd profile scraper."""
    configure_logging("DEBUG" if verbose else cfg.log_level)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = cfg.host,
    port: Annotated[int, typer.Option(help="Port to listen on.")] = cfg.port,
    reload: Annotated[bool, typer.Option(help="Reload on code changes.")] = False,
):
    """Run the scraping API with uvicorn."""
    import uvicorn

    console.print(Panel(f"lbscraper API on http://{host}:{port}", style="bold blue"))
    uvicorn.run(
        "lbscraper.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command("scrape")
def scrape(
    username: str = typer.Argument(..., help="Letterboxd username to scrape."),
    csv_path: Annotated[
        Optional[Path], typer.Option("--csv", help="Write films as Letterboxd CSV.")
    ] = None,
    json_path: Annotated[
        Optional[Path], typer.Option("--json", help="Write the full job as JSON.")
    ] = None,
    scheme: Annotated[
        SelectorScheme, typer.Option(help="Selector set for the site markup.")
    ] = SelectorScheme.current,
    delay: Annotated[
        float, typer.Option(help="Seconds to wait between listing pages.")
    ] = cfg.page_delay_seconds,
    limit: Annotated[int, typer.Option(help="Films to show in the table.")] = 20,
):
    """Scrape one profile in the foreground and print a summary."""
    try:
        username = normalize_username(username)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)

    config = cfg.model_copy(
        update={"selector_scheme": scheme.value, "page_delay_seconds": delay}
    )
    with console.status(f"Scraping {username}..."):
        job = asyncio.run(_scrape(username, config))

    _print_job(job, limit)

    if csv_path:
        write_films_csv(job.data, csv_path)
        console.print(f"[green]Films written to {csv_path}[/green]")
    if json_path:
        write_job_json(job, json_path)
        console.print(f"[green]Job written to {json_path}[/green]")

    if job.status == JobStatus.FAILED:
        raise typer.Exit(code=1)


async def _scrape(username: str, config: Config) -> Job:
    """Run one job to completion on a private store."""
    store = JobStore()
    browser_config = ScraperConfig(
        headless=config.headless, timeout=config.navigation_timeout_ms
    )
    orchestrator = ScrapeOrchestrator(
        store,
        config,
        session_factory=partial(BrowserManager.session, browser_config),
    )
    job_id = await store.create()
    try:
        await orchestrator.run(username, job_id)
        return await store.get(job_id)
    finally:
        store.cancel_evictions()
        await cleanup()


def _print_job(job: Job, limit: int) -> None:
    profile = job.profile_data
    if profile is not None:
        stats = profile.stats
        console.print(
            Panel(
                f"[bold]{profile.display_name}[/bold] (@{profile.username})\n"
                f"{profile.location or ''}\n"
                f"Films: {stats.total_films}  This year: {stats.films_this_year}  "
                f"Following: {stats.following}  Followers: {stats.followers}",
                title="Profile",
            )
        )

    table = Table(title=f"Films ({len(job.data)} over {job.total_pages} pages)")
    table.add_column("Name")
    table.add_column("Year")
    table.add_column("Rating", justify="right")
    for film in job.data[:limit]:
        table.add_row(film.name, film.year or "", f"{film.rating:g}")
    console.print(table)

    if job.status == JobStatus.FAILED:
        console.print(f"[red]Scrape failed: {job.error}[/red]")
    else:
        console.print(f"[green]Scrape {job.status.value}[/green]")


def main() -> None:
    """CLI for the lbscraper application."""
    app()
