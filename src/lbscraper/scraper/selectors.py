"""Versioned selector sets for the Letterboxd markup.

The site has changed its listing markup over time, so selectors live in
named sets picked by configuration rather than inline in the parsers.
"""

from dataclasses import dataclass

from lbscraper.exceptions import UnknownSelectorSetError

AttrSources = tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class SelectorSet:
    """Selectors for one generation of the site markup."""

    name: str

    # Profile page
    profile_marker: str
    display_name: str
    username_sources: AttrSources
    avatar: str
    location: str
    bio: str
    stat: str
    stat_value: str
    stat_label: str

    # Rated-films listing
    listing_container: str
    listing_item: str
    title_sources: AttrSources
    link_sources: AttrSources
    rating: str
    pagination: str


CURRENT = SelectorSet(
    name="current",
    profile_marker=".profile-summary",
    display_name=".profile-summary .displayname, .profile-summary h1.title-3",
    username_sources=(
        (".profile-summary .displayname", "data-original-title"),
        (".profile-summary .displayname", "title"),
        (".profile-summary .profile-avatar img", "alt"),
    ),
    avatar=".profile-summary .profile-avatar img, .profile-summary .avatar img",
    location=".profile-metadata .metadatum .label",
    bio=".profile-summary .collapsible-text, .bio .collapsible-text",
    stat=".profile-stats .profile-statistic",
    stat_value=".value",
    stat_label=".definition",
    listing_container="ul.grid, ul.poster-list",
    listing_item="li.griditem, li.poster-container",
    title_sources=(
        ("[data-item-full-display-name]", "data-item-full-display-name"),
        ("[data-item-name]", "data-item-name"),
        ("img[alt]", "alt"),
    ),
    link_sources=(
        ("[data-item-link]", "data-item-link"),
        ("[data-target-link]", "data-target-link"),
    ),
    rating=".poster-viewingdata .rating, .rating",
    pagination=".paginate-pages li",
)

LEGACY = SelectorSet(
    name="legacy",
    profile_marker="section.profile-header, .profile-summary",
    display_name="h1.title-1, .profile-name h1",
    username_sources=(
        (".profile-name .tooltip", "data-original-title"),
        (".profile-avatar img", "alt"),
    ),
    avatar=".profile-avatar img",
    location=".profile-metadata .metadatum .label",
    bio=".bio .collapsible-text, .collapsible-text",
    stat=".profile-stats .profile-statistic",
    stat_value=".value",
    stat_label=".definition",
    listing_container="ul.poster-list",
    listing_item="li.poster-container",
    title_sources=(
        ("a.frame[data-original-title]", "data-original-title"),
        ("[data-film-name]", "data-film-name"),
    ),
    link_sources=(
        ("[data-film-link]", "data-film-link"),
        ("[data-target-link]", "data-target-link"),
    ),
    rating=".rating",
    pagination=".paginate-pages li a",
)

SELECTOR_SETS: dict[str, SelectorSet] = {
    CURRENT.name: CURRENT,
    LEGACY.name: LEGACY,
}


def get_selector_set(name: str) -> SelectorSet:
    """Look up a registered selector set by name."""
    try:
        return SELECTOR_SETS[name]
    except KeyError:
        raise UnknownSelectorSetError(name) from None
