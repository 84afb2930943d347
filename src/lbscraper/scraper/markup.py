"""HTML extraction utilities.

Thin typed wrapper over BeautifulSoup so extraction code depends on a small
selection interface instead of the parser library itself.
"""

import re
from collections.abc import Iterable

from bs4 import BeautifulSoup, Tag

_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"\d+")


class MarkupNode:
    """A queryable node of a parsed markup fragment."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    def __repr__(self) -> str:
        return f"MarkupNode(<{self._tag.name}>)"

    def select(self, selector: str) -> list["MarkupNode"]:
        """Return all descendants matching a CSS selector."""
        return [MarkupNode(tag) for tag in self._tag.select(selector)]

    def select_one(self, selector: str) -> "MarkupNode | None":
        """Return the first descendant matching a CSS selector."""
        tag = self._tag.select_one(selector)
        return MarkupNode(tag) if tag is not None else None

    def text(self) -> str:
        """Text content with whitespace collapsed."""
        return _WHITESPACE_RE.sub(" ", self._tag.get_text(" ")).strip()

    def attr(self, name: str) -> str | None:
        """Attribute value, or None when missing or blank."""
        value = self._tag.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value is None:
            return None
        value = value.strip()
        return value or None

    def data(self, name: str) -> str | None:
        """Value of a ``data-*`` attribute, e.g. ``data("film-name")``."""
        return self.attr(f"data-{name}")

    def first_attr(self, sources: Iterable[tuple[str, str]]) -> str | None:
        """Return the first non-empty attribute found among ``(selector, attribute)`` pairs."""
        for selector, attribute in sources:
            for node in self.select(selector):
                value = node.attr(attribute)
                if value:
                    return value
        return None

    def first_text(self, selector: str) -> str | None:
        """Text of the first match of ``selector``, or None if absent or empty."""
        node = self.select_one(selector)
        if node is None:
            return None
        return node.text() or None


def parse_markup(html: str) -> MarkupNode:
    """Parse an HTML document or fragment."""
    return MarkupNode(BeautifulSoup(html or "", "html.parser"))


def parse_count(text: str | None, default: int = 0) -> int:
    """Parse a displayed counter such as ``"1,234"`` into an int.

    Separators are stripped by keeping digit runs only, so the result does
    not depend on the locale that rendered the number.
    """
    if not text:
        return default
    digits = "".join(_DIGITS_RE.findall(text))
    if not digits:
        return default
    return int(digits)
