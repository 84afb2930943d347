"""Profile page extraction.

Reads the public profile summary of a user. Extraction never fails the
caller: any error yields a degraded summary built from the identifier.
"""

import re

import structlog

from lbscraper.jobs.models import ProfileStats, ProfileSummary
from lbscraper.scraper.markup import MarkupNode, parse_count, parse_markup
from lbscraper.scraper.playwright_scraper import BrowserSession
from lbscraper.scraper.selectors import CURRENT, SelectorSet

logger = structlog.get_logger(logger_name=__name__)

# Avatar URLs embed their crop size, e.g. ``...-0-220-0-220-crop.jpg``.
_AVATAR_CROP_RE = re.compile(r"-0-\d+-0-\d+-crop")
_AVATAR_MAX_CROP = "-0-1000-0-1000-crop"

# Counter label (lowercased) -> ProfileStats field
STAT_LABELS = {
    "films": "total_films",
    "film": "total_films",
    "this year": "films_this_year",
    "following": "following",
    "followers": "followers",
    "follower": "followers",
}


def profile_url(base_url: str, username: str) -> str:
    return f"{base_url.rstrip('/')}/{username}/"


def upscale_avatar_url(url: str | None) -> str | None:
    """Rewrite an avatar URL to request the largest crop."""
    if not url:
        return None
    return _AVATAR_CROP_RE.sub(_AVATAR_MAX_CROP, url)


def _parse_stats(root: MarkupNode, selectors: SelectorSet) -> ProfileStats:
    values: dict[str, int] = {}
    for stat in root.select(selectors.stat):
        label = stat.first_text(selectors.stat_label)
        field_name = STAT_LABELS.get(label.lower()) if label else None
        if field_name is None or field_name in values:
            continue
        values[field_name] = parse_count(stat.first_text(selectors.stat_value))
    return ProfileStats(**values)


def parse_profile(
    html: str, username: str, selectors: SelectorSet = CURRENT
) -> ProfileSummary:
    """Build a ProfileSummary from profile page markup.

    Args:
        html: Full profile page HTML
        username: Identifier the profile was requested with
        selectors: Selector set matching the page markup

    Returns:
        Parsed summary; missing optional fields are None and missing
        counters are 0.
    """
    root = parse_markup(html)

    avatar = root.select_one(selectors.avatar)
    avatar_url = None
    if avatar is not None:
        avatar_url = avatar.attr("src") or avatar.attr("data-src")

    return ProfileSummary(
        display_name=root.first_text(selectors.display_name) or username,
        username=root.first_attr(selectors.username_sources) or username,
        avatar_url=upscale_avatar_url(avatar_url),
        location=root.first_text(selectors.location),
        bio=root.first_text(selectors.bio),
        stats=_parse_stats(root, selectors),
    )


async def extract_profile(
    session: BrowserSession,
    username: str,
    *,
    base_url: str,
    selectors: SelectorSet = CURRENT,
    timeout_ms: int = 10000,
    navigation_timeout_ms: int = 60000,
) -> ProfileSummary:
    """Navigate to a user's profile and extract its summary.

    Never raises: on any failure a degraded summary containing only the
    identifier and zeroed stats is returned.
    """
    url = profile_url(base_url, username)
    try:
        await session.navigate(
            url, wait_until="domcontentloaded", timeout_ms=navigation_timeout_ms
        )
        if not await session.wait_for_selector(selectors.profile_marker, timeout_ms):
            logger.warning("Profile summary not found", url=url)
            return ProfileSummary.degraded(username)

        profile = parse_profile(await session.content(), username, selectors)
    except Exception as e:
        logger.warning("Profile extraction failed", url=url, error=str(e))
        return ProfileSummary.degraded(username)

    logger.info(
        "Profile extracted",
        username=profile.username,
        total_films=profile.stats.total_films,
    )
    return profile
