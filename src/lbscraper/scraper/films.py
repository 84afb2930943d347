"""Rated-films listing parser.

Turns listing pages into FilmRecord lists. Page navigation and
throttling are driven by the orchestrator; this module only builds URLs
and parses markup.
"""

import re
from urllib.parse import urljoin

import structlog

from lbscraper.jobs.models import FilmRecord
from lbscraper.scraper.markup import MarkupNode, parse_markup
from lbscraper.scraper.selectors import CURRENT, SelectorSet

logger = structlog.get_logger(logger_name=__name__)

FULL_STAR = "★"
HALF_STAR = "½"

_YEAR_SUFFIX_RE = re.compile(r"\s*\((\d{4})\)\s*$")
_PAGE_NUMBER_RE = re.compile(r"^\d+$")


def listing_url(base_url: str, username: str, page: int = 1) -> str:
    """URL of a page of the user's films, sorted by rating date."""
    root = f"{base_url.rstrip('/')}/{username}/films/by/rated-date/"
    if page <= 1:
        return root
    return f"{root}page/{page}/"


def parse_rating(text: str | None) -> float:
    """Convert star glyphs to a number: ``"★★★½"`` -> 3.5."""
    if not text:
        return 0.0
    stars = text.count(FULL_STAR)
    half = 0.5 if HALF_STAR in text else 0.0
    return min(5.0, stars + half)


def split_title_year(title: str) -> tuple[str, str | None]:
    """Split ``"Arrival (2016)"`` into ``("Arrival", "2016")``."""
    match = _YEAR_SUFFIX_RE.search(title)
    if match is None:
        return title.strip(), None
    return title[: match.start()].strip(), match.group(1)


def parse_total_pages(html: str, selectors: SelectorSet = CURRENT) -> int:
    """Read the page count from the last pagination entry (1 if absent)."""
    entries = parse_markup(html).select(selectors.pagination)
    if not entries:
        return 1
    last = entries[-1].text()
    if not _PAGE_NUMBER_RE.match(last):
        return 1
    return max(1, int(last))


def _parse_item(
    item: MarkupNode, selectors: SelectorSet, base_url: str
) -> FilmRecord | None:
    title = item.first_attr(selectors.title_sources)
    link = item.first_attr(selectors.link_sources)
    if not title or not link:
        return None

    name, year = split_title_year(title)
    if not name:
        return None

    return FilmRecord(
        name=name,
        year=year,
        uri=urljoin(base_url, link),
        rating=parse_rating(item.first_text(selectors.rating)),
    )


def parse_film_page(
    html: str, selectors: SelectorSet = CURRENT, base_url: str = "https://letterboxd.com"
) -> list[FilmRecord] | None:
    """Parse every film of one listing page.

    Args:
        html: Markup of the page or of the listing container itself
        selectors: Selector set matching the markup
        base_url: Origin used to make film links absolute

    Returns:
        Records in page order, or None when the listing container is
        missing so the caller can skip the page.
    """
    root = parse_markup(html)
    container = root.select_one(selectors.listing_container)
    if container is None:
        return None

    films: list[FilmRecord] = []
    for index, item in enumerate(container.select(selectors.listing_item)):
        film = _parse_item(item, selectors, base_url)
        if film is None:
            logger.debug("Skipping listing item without title or link", index=index)
            continue
        films.append(film)
    return films
