"""Playwright-based browser automation for profile scraping.

Provides browser management with:
- Shared browser instance (reused across jobs)
- Isolated browser contexts (one per job, clean cookies and storage)
- Resource blocking (skip images, fonts, analytics)
- A small session interface the extractors are written against
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Protocol

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from lbscraper.exceptions import NavigationError

logger = structlog.get_logger(logger_name=__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class ScraperConfig:
    """Configuration for the Playwright browser."""

    headless: bool = True
    timeout: int = 60000  # ms
    block_resources: bool = True
    blocked_resource_types: tuple[str, ...] = (
        "image",
        "media",
        "font",
    )
    blocked_domains: tuple[str, ...] = (
        "google-analytics.com",
        "googletagmanager.com",
        "facebook.com",
        "doubleclick.net",
        "ads.",
        "tracking.",
        "analytics.",
    )
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    )


DEFAULT_CONFIG = ScraperConfig()


# =============================================================================
# Session interface
# =============================================================================


class BrowserSession(Protocol):
    """What the extractors need from a browser tab."""

    async def navigate(
        self, url: str, *, wait_until: str = "networkidle", timeout_ms: int = 60000
    ) -> None: ...

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool: ...

    async def extract(self, selector: str) -> str | None: ...

    async def content(self) -> str: ...

    async def close(self) -> None: ...


class PlaywrightSession:
    """BrowserSession backed by a Playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    async def navigate(
        self, url: str, *, wait_until: str = "networkidle", timeout_ms: int = 60000
    ) -> None:
        """Load ``url``; raise NavigationError on HTTP errors or timeouts."""
        try:
            response = await self._page.goto(
                url, wait_until=wait_until, timeout=timeout_ms
            )
        except PlaywrightTimeout as e:
            raise NavigationError(url, f"timed out after {timeout_ms} ms") from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

        if response is not None and response.status >= 400:
            raise NavigationError(url, f"HTTP {response.status}")
        logger.debug("Page loaded", url=url)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool:
        """Wait for ``selector``; return False instead of raising on timeout."""
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeout:
            logger.debug("Selector not found", selector=selector, timeout=timeout_ms)
            return False
        return True

    async def extract(self, selector: str) -> str | None:
        """Outer HTML of the first element matching ``selector``."""
        element = await self._page.query_selector(selector)
        if element is None:
            return None
        return await element.evaluate("el => el.outerHTML")

    async def content(self) -> str:
        return await self._page.content()

    async def close(self) -> None:
        await self._page.close()


# =============================================================================
# Browser Manager (shared class state)
# =============================================================================


class BrowserManager:
    """Manages a shared browser instance for efficient resource usage.

    Usage:
        async with BrowserManager.session() as session:
            await session.navigate(url)
    """

    _playwright: Playwright | None = None
    _browser: Browser | None = None
    _lock: asyncio.Lock = asyncio.Lock()
    _config: ScraperConfig = DEFAULT_CONFIG

    @classmethod
    def configure(cls, config: ScraperConfig) -> None:
        """Set the configuration used by the next browser launch."""
        cls._config = config

    @classmethod
    async def initialize(cls, config: ScraperConfig | None = None) -> None:
        """Initialize the browser manager with configuration."""
        async with cls._lock:
            if config:
                cls._config = config
            if cls._browser is None:
                playwright = await async_playwright().start()
                try:
                    browser = await playwright.chromium.launch(
                        headless=cls._config.headless,
                        args=[
                            "--no-sandbox",
                            "--disable-setuid-sandbox",
                            "--disable-dev-shm-usage",
                            "--disable-blink-features=AutomationControlled",
                        ],
                    )
                except Exception:
                    # Release the driver started above
                    await playwright.stop()
                    raise
                cls._playwright = playwright
                cls._browser = browser
                logger.info("Browser initialized", headless=cls._config.headless)

    @classmethod
    async def close(cls) -> None:
        """Close the browser and cleanup resources."""
        async with cls._lock:
            if cls._browser:
                await cls._browser.close()
                cls._browser = None
            if cls._playwright:
                await cls._playwright.stop()
                cls._playwright = None
            logger.info("Browser closed")

    @classmethod
    @asynccontextmanager
    async def get_context(
        cls, config: ScraperConfig | None = None
    ) -> AsyncGenerator[BrowserContext, None]:
        """Get an isolated browser context.

        Each context has its own cookies, cache, and storage.
        Automatically cleaned up when done.
        """
        cfg = config or cls._config

        # Ensure browser is initialized
        if cls._browser is None:
            await cls.initialize(config)

        assert cls._browser is not None

        context = await cls._browser.new_context(
            user_agent=cfg.user_agent,
            viewport={"width": 1920, "height": 1080},
            java_script_enabled=True,
        )

        # Set up resource blocking if enabled
        if cfg.block_resources:
            await context.route("**/*", lambda route: _handle_route(route, cfg))

        try:
            yield context
        finally:
            await context.close()

    @classmethod
    @asynccontextmanager
    async def session(
        cls, config: ScraperConfig | None = None
    ) -> AsyncGenerator[BrowserSession, None]:
        """Open a page in a fresh context and wrap it as a BrowserSession."""
        async with cls.get_context(config) as context:
            page = await context.new_page()
            page.set_default_timeout((config or cls._config).timeout)
            session = PlaywrightSession(page)
            try:
                yield session
            finally:
                await session.close()
                logger.debug("Browser session released")


async def _handle_route(route: Route, config: ScraperConfig) -> None:
    """Handle route interception for resource blocking."""
    request = route.request

    # Block by resource type
    if request.resource_type in config.blocked_resource_types:
        await route.abort()
        return

    # Block by domain
    url = request.url
    for blocked in config.blocked_domains:
        if blocked in url:
            await route.abort()
            return

    await route.continue_()


# =============================================================================
# Cleanup helper
# =============================================================================


async def cleanup() -> None:
    """Clean up browser resources. Call on shutdown."""
    await BrowserManager.close()
