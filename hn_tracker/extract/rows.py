"""
Row extraction from fetched Hacker News pages.

Both the front page and the comment pages are laid out as table rows. The
collector never touches markup directly: it works against the ``Row``
protocol, and ``HtmlRow`` is the BeautifulSoup-backed implementation of it.
"""

import copy
import re
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from bs4 import BeautifulSoup, Tag

from hn_tracker.config import SelectorConfig

NUMBER_RE = re.compile(r"[0-9]+")


class RowKind(str, Enum):
    SPACER = "spacer"
    TITLE = "title"
    COMMENT = "comment"
    SUBTEXT = "subtext"
    OTHER = "other"


class Row(Protocol):
    """
    A single table row of a fetched page.

    Every accessor takes a CSS selector evaluated inside the row; ``None``
    addresses the row element itself. Only the first match is used.
    """

    def text(self, selector: Optional[str] = None) -> str:
        ...

    def attr(self, selector: Optional[str], name: str) -> Tuple[str, bool]:
        ...

    def select(self, selector: str) -> List["Row"]:
        ...

    def count(self, selector: str) -> int:
        ...

    def html(self, selector: Optional[str] = None, exclude: Optional[str] = None) -> str:
        ...

    def classification(self) -> RowKind:
        ...


def parse_int_prefix(text: str) -> int:
    """
    Extract the first run of digits from a piece of text.

    "12." -> 12, "314 points" -> 314, "discuss" -> 0.
    """
    match = NUMBER_RE.search(text or "")
    if match is None:
        return 0
    return int(match.group())


class HtmlRow:
    """``Row`` implementation over a BeautifulSoup element."""

    def __init__(self, tag: Tag, selectors: Optional[SelectorConfig] = None):
        self.tag = tag
        self.selectors = selectors or SelectorConfig()

    def _find(self, selector: Optional[str]) -> Optional[Tag]:
        if selector is None:
            return self.tag
        return self.tag.select_one(selector)

    def text(self, selector: Optional[str] = None) -> str:
        found = self._find(selector)
        if found is None:
            return ""
        return found.get_text().strip()

    def attr(self, selector: Optional[str], name: str) -> Tuple[str, bool]:
        found = self._find(selector)
        if found is None or not found.has_attr(name):
            return "", False
        value = found[name]
        # bs4 returns multi-valued attributes such as class as lists
        if isinstance(value, list):
            value = " ".join(value)
        return value, True

    def select(self, selector: str) -> List["HtmlRow"]:
        return [HtmlRow(tag, self.selectors) for tag in self.tag.select(selector)]

    def count(self, selector: str) -> int:
        return len(self.tag.select(selector))

    def html(self, selector: Optional[str] = None, exclude: Optional[str] = None) -> str:
        """Inner markup of the first match, with ``exclude`` matches removed from a copy."""
        found = self._find(selector)
        if found is None:
            return ""
        if exclude:
            found = copy.copy(found)
            for unwanted in found.select(exclude):
                unwanted.decompose()
        return found.decode_contents()

    def classification(self) -> RowKind:
        classes = self.tag.get("class") or []
        if self.selectors.spacer_class in classes:
            return RowKind.SPACER
        if self.selectors.comment_class in classes:
            return RowKind.COMMENT
        if self.selectors.title_class in classes:
            return RowKind.TITLE
        if not classes and self.tag.select_one(self.selectors.subtext) is not None:
            return RowKind.SUBTEXT
        return RowKind.OTHER

    def __repr__(self) -> str:
        return f"<HtmlRow({self.classification().value})>"


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def front_page_rows(document: BeautifulSoup, selectors: Optional[SelectorConfig] = None) -> List[HtmlRow]:
    """Rows of the ranked article table, in page order."""
    selectors = selectors or SelectorConfig()
    return [HtmlRow(tag, selectors) for tag in document.select(selectors.main_table)]


def comment_rows(document: BeautifulSoup, selectors: Optional[SelectorConfig] = None) -> List[HtmlRow]:
    """One row per comment, in the order the site emits them (a pre-order walk of the thread)."""
    selectors = selectors or SelectorConfig()
    return [HtmlRow(tag, selectors) for tag in document.select(selectors.comment_row)]
