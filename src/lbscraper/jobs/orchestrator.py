"""Background scrape pipeline.

Each submitted job runs as its own asyncio task:
  1. Wait for an admission slot (bounded number of browser sessions)
  2. Open a browser session
  3. Extract the profile summary (never fatal)
  4. Load the listing root and read the page count
  5. Walk every page in order, appending films and updating progress
  6. Mark the job completed or failed, release the session, schedule eviction
"""

import asyncio
import re
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

import structlog

from lbscraper.config import Config
from lbscraper.exceptions import (
    FatalCrawlError,
    InvalidUsernameError,
    JobNotFoundError,
    JobStateError,
    NavigationError,
)
from lbscraper.jobs.models import FilmRecord, Job
from lbscraper.jobs.store import JobStore
from lbscraper.scraper.films import listing_url, parse_film_page, parse_total_pages
from lbscraper.scraper.playwright_scraper import BrowserManager, BrowserSession
from lbscraper.scraper.profile import extract_profile
from lbscraper.scraper.selectors import SelectorSet, get_selector_set

logger = structlog.get_logger(logger_name=__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[BrowserSession]]

# Letterboxd usernames are letters, digits and underscores
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def normalize_username(username: str | None) -> str:
    """Strip a submitted username and check it is safe to put in a URL path.

    Raises InvalidUsernameError if it is blank or has characters Letterboxd
    does not allow in usernames.
    """
    cleaned = (username or "").strip().strip("/")
    if not cleaned:
        raise InvalidUsernameError("Username is required.")
    if not _USERNAME_RE.match(cleaned):
        raise InvalidUsernameError(
            "Username may only contain letters, digits and underscores."
        )
    return cleaned


class ScrapeOrchestrator:
    """Drives scrape jobs from submission to a terminal state."""

    def __init__(
        self,
        store: JobStore,
        config: Config,
        session_factory: SessionFactory | None = None,
        selectors: SelectorSet | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.selectors = selectors or get_selector_set(config.selector_scheme)
        self._session_factory: SessionFactory = (
            session_factory or BrowserManager.session
        )
        self._slots = asyncio.Semaphore(config.max_concurrent_jobs)
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_jobs(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def submit(self, username: str) -> str:
        """Create a job and start scraping it in the background.

        Returns the job id immediately; progress is read from the store.
        """
        username = normalize_username(username)
        job_id = await self.store.create()
        task = asyncio.create_task(self.run(username, job_id), name=job_id)
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Scrape submitted", job_id=job_id, username=username)
        return job_id

    async def shutdown(self) -> None:
        """Cancel running jobs and wait for them to release their sessions."""
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled running jobs", count=len(tasks))

    async def run(self, username: str, job_id: str) -> None:
        """Scrape ``username`` into job ``job_id`` until a terminal state."""
        log = logger.bind(job_id=job_id, username=username)
        try:
            async with self._slots:
                try:
                    await self.store.update(job_id, Job.start)
                except (JobNotFoundError, JobStateError) as e:
                    log.warning("Job could not be started", error=str(e))
                    return
                log.info("Scrape started")
                try:
                    async with self._session_factory() as session:
                        await self._scrape(session, username, job_id, log)
                except Exception as e:
                    log.exception("Scrape failed", error=str(e))
                    await self._fail(job_id, _describe(e))
                    return

                job = await self.store.update(job_id, Job.complete)
                log.info("Scrape completed", films=len(job.data), pages=job.total_pages)
        except asyncio.CancelledError:
            log.warning("Scrape cancelled")
            await self._fail(job_id, "Scrape cancelled")
            raise
        finally:
            # Runs after the session context has exited
            if job_id in self.store:
                self.store.schedule_eviction(job_id, self.config.retention_seconds)

    async def _fail(self, job_id: str, message: str) -> None:
        def mark_failed(job: Job) -> None:
            if not job.is_terminal:
                job.fail(message)

        try:
            await self.store.update(job_id, mark_failed)
        except JobNotFoundError:
            logger.warning("Job vanished before it could be marked failed", job_id=job_id)

    async def _scrape(
        self,
        session: BrowserSession,
        username: str,
        job_id: str,
        log,
    ) -> None:
        cfg = self.config
        selectors = self.selectors

        # ---- 1. Profile -----------------------------------------------------
        profile = await extract_profile(
            session,
            username,
            base_url=cfg.base_url,
            selectors=selectors,
            timeout_ms=cfg.profile_timeout_ms,
            navigation_timeout_ms=cfg.navigation_timeout_ms,
        )
        await self.store.update(job_id, lambda job: job.set_profile(profile))

        # ---- 2. Listing root and page count ---------------------------------
        root_url = listing_url(cfg.base_url, username)
        try:
            await session.navigate(
                root_url, wait_until="networkidle", timeout_ms=cfg.navigation_timeout_ms
            )
        except NavigationError as e:
            raise FatalCrawlError(f"Could not open films for {username}: {e}") from e

        await session.wait_for_selector(
            selectors.listing_container, cfg.selector_timeout_ms
        )
        total_pages = parse_total_pages(await session.content(), selectors)
        await self.store.update(job_id, lambda job: job.set_total_pages(total_pages))
        log.info("Listing found", total_pages=total_pages)

        # ---- 3. Pages, strictly in order ------------------------------------
        for current_page in range(1, total_pages + 1):
            # Page 1 is already loaded from the root navigation
            if current_page > 1:
                await asyncio.sleep(cfg.page_delay_seconds)
                page_url = listing_url(cfg.base_url, username, current_page)
                try:
                    await session.navigate(
                        page_url,
                        wait_until="networkidle",
                        timeout_ms=cfg.navigation_timeout_ms,
                    )
                except NavigationError as e:
                    log.warning("Skipping page", page=current_page, error=str(e))
                    await self._advance(job_id, current_page, total_pages)
                    continue

            films = await self._read_page(session, wait=current_page > 1)
            if films is None:
                log.warning("Listing container missing, skipping page", page=current_page)
            else:
                await self.store.update(job_id, lambda job: job.add_films(films))
                log.debug("Page parsed", page=current_page, films=len(films))

            await self._advance(job_id, current_page, total_pages)

    async def _read_page(
        self, session: BrowserSession, wait: bool = True
    ) -> list[FilmRecord] | None:
        selectors = self.selectors
        if wait and not await session.wait_for_selector(
            selectors.listing_container, self.config.selector_timeout_ms
        ):
            return None
        markup = await session.extract(selectors.listing_container)
        if markup is None:
            return None
        return parse_film_page(markup, selectors, self.config.base_url)

    async def _advance(self, job_id: str, current_page: int, total_pages: int) -> None:
        progress = current_page / total_pages
        await self.store.update(job_id, lambda job: job.advance(progress))


def _describe(error: Exception) -> str:
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return message
