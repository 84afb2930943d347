"""Letterboxd scraping module with three main components:
- profile: To extract a user's public profile summary.
- films: To parse the paginated rated-films listing into records.
- playwright_scraper: To manage the browser sessions both run in.

Selectors are grouped in versioned sets (see ``selectors``) so a markup
change on the site only needs a new set, not new parsing code.
"""

from .films import (
    listing_url,
    parse_film_page,
    parse_rating,
    parse_total_pages,
    split_title_year,
)
from .markup import MarkupNode, parse_count, parse_markup
from .playwright_scraper import (
    BrowserManager,
    BrowserSession,
    PlaywrightSession,
    ScraperConfig,
    cleanup,
)
from .profile import extract_profile, parse_profile, upscale_avatar_url
from .selectors import SELECTOR_SETS, SelectorSet, get_selector_set

__all__ = [
    # Listing
    "listing_url",
    "parse_film_page",
    "parse_rating",
    "parse_total_pages",
    "split_title_year",
    # Profile
    "extract_profile",
    "parse_profile",
    "upscale_avatar_url",
    # Markup
    "MarkupNode",
    "parse_markup",
    "parse_count",
    # Selectors
    "SELECTOR_SETS",
    "SelectorSet",
    "get_selector_set",
    # Browser
    "BrowserManager",
    "BrowserSession",
    "PlaywrightSession",
    "ScraperConfig",
    "cleanup",
]
