"""Shared test fixtures.

Provides:
- config: Config with no page delay and a short admission limit
- fake_site: dict of URL -> HTML served by FakeSession
- fake_session / session_factory / make_session: in-memory BrowserSession, no browser needed
- listing_html / film_item_html / profile_html: markup builders
"""

from contextlib import asynccontextmanager

import pytest
from bs4 import BeautifulSoup

from lbscraper.config import Config
from lbscraper.exceptions import NavigationError

BASE_URL = "https://letterboxd.com"


class FakeSession:
    """BrowserSession serving canned HTML keyed by URL."""

    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.navigation_errors: dict[str, Exception] = {}
        self.extract_errors: dict[str, Exception] = {}
        self.visited: list[str] = []
        self.current_url: str | None = None
        self.closed = False

    @property
    def _html(self) -> str:
        if self.current_url is None:
            return ""
        return self.pages.get(self.current_url, "")

    async def navigate(self, url, *, wait_until="networkidle", timeout_ms=60000):
        self.visited.append(url)
        if url in self.navigation_errors:
            raise self.navigation_errors[url]
        if url not in self.pages:
            raise NavigationError(url, "HTTP 404")
        self.current_url = url

    async def wait_for_selector(self, selector, timeout_ms):
        return BeautifulSoup(self._html, "html.parser").select_one(selector) is not None

    async def extract(self, selector):
        if self.current_url in self.extract_errors:
            raise self.extract_errors[self.current_url]
        tag = BeautifulSoup(self._html, "html.parser").select_one(selector)
        return str(tag) if tag is not None else None

    async def content(self):
        return self._html

    async def close(self):
        self.closed = True


@pytest.fixture
def config():
    """Test configuration: no throttling, generous retention."""
    return Config(
        base_url=BASE_URL,
        page_delay_seconds=0,
        retention_seconds=60,
        max_concurrent_jobs=2,
        selector_scheme="current",
    )


@pytest.fixture
def film_item_html():
    """Build one listing item in the current markup."""

    def build(title: str, slug: str | None, rating: str = "") -> str:
        link = f' data-item-link="/film/{slug}/"' if slug else ""
        return (
            '<li class="griditem">'
            '<div class="react-component" data-component-class="LazyPoster"'
            f' data-item-name="{title}" data-item-full-display-name="{title}"{link}>'
            f'<img alt="{title}" src="/empty.png"/>'
            "</div>"
            '<p class="poster-viewingdata">'
            f'<span class="rating -micro -darker">{rating}</span>'
            "</p>"
            "</li>"
        )

    return build


@pytest.fixture
def listing_html():
    """Build a listing page: items plus an optional pagination control."""

    def build(items: list[str], total_pages: int | None = None, container: bool = True) -> str:
        pagination = ""
        if total_pages:
            entries = "".join(
                f'<li class="paginate-page"><a href="/alice/films/by/rated-date/page/{n}/">{n}</a></li>'
                for n in range(1, total_pages + 1)
            )
            pagination = f'<div class="paginate-pages"><ul>{entries}</ul></div>'
        body = f'<ul class="grid -p70">{"".join(items)}</ul>' if container else "<p>Nothing here</p>"
        return f"<html><body><section>{body}</section>{pagination}</body></html>"

    return build


@pytest.fixture
def profile_html():
    """Full profile page in the current markup."""
    return """
    <html><body>
    <section class="profile-summary">
      <div class="profile-avatar">
        <span class="avatar -a110">
          <img src="https://a.ltrbxd.com/resized/avatar/upload/1/2/3/avtr-0-220-0-220-crop.jpg?v=abc" alt="Alice Smith"/>
        </span>
      </div>
      <div class="profile-info">
        <h1 class="title-3">
          <span class="displayname tooltip" data-original-title="alice">Alice Smith</span>
        </h1>
        <div class="profile-metadata">
          <div class="metadatum"><span class="label">Berlin, Germany</span></div>
          <div class="metadatum"><span class="label">alice.example</span></div>
        </div>
        <div class="bio"><div class="collapsible-text"><p>Slow cinema   enjoyer.</p></div></div>
      </div>
      <div class="profile-stats">
        <h4 class="profile-statistic"><a href="/alice/films/"><span class="value">1,234</span><span class="definition">Films</span></a></h4>
        <h4 class="profile-statistic"><a href="/alice/films/diary/"><span class="value">56</span><span class="definition">This year</span></a></h4>
        <h4 class="profile-statistic"><a href="/alice/lists/"><span class="value">7</span><span class="definition">Lists</span></a></h4>
        <h4 class="profile-statistic"><a href="/alice/following/"><span class="value">89</span><span class="definition">Following</span></a></h4>
        <h4 class="profile-statistic"><a href="/alice/followers/"><span class="value">2,048</span><span class="definition">Followers</span></a></h4>
      </div>
    </section>
    </body></html>
    """


@pytest.fixture
def fake_site(profile_html, listing_html, film_item_html):
    """A two-page profile for ``alice`` with three rated films."""
    root = f"{BASE_URL}/alice/films/by/rated-date/"
    return {
        f"{BASE_URL}/alice/": profile_html,
        root: listing_html(
            [
                film_item_html("Arrival (2016)", "arrival-2016", "★★★★½"),
                film_item_html("Stalker (1979)", "stalker", "★★★★★"),
            ],
            total_pages=2,
        ),
        f"{root}page/2/": listing_html(
            [film_item_html("Cats (2019)", "cats-2019", "½")],
            total_pages=2,
        ),
    }


@pytest.fixture
def fake_session(fake_site):
    return FakeSession(fake_site)


@pytest.fixture
def session_factory(fake_session):
    """Session factory handing out ``fake_session`` and counting opens."""

    @asynccontextmanager
    async def factory():
        factory.opened += 1
        try:
            yield fake_session
        finally:
            await fake_session.close()

    factory.opened = 0
    return factory


@pytest.fixture
def make_session(fake_site):
    """Build a fresh FakeSession over ``fake_site`` per call."""

    def build():
        return FakeSession(fake_site)

    return build
