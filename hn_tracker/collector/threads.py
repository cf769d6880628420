"""
Comment thread reconstruction.

A comment page lists comments as a flat sequence of rows in pre-order, each
indented according to its nesting level. No row names the comment it replies
to, so the tree is recovered from the indentation alone: a comment replies to
the nearest earlier comment that is indented less than it is.

The scan keeps the current root-to-leaf path as a list of (id, offset)
entries. For each new row, entries indented at least as deep as the new row
are cut off the end (they can take no further replies, since the input is in
pre-order), and whatever remains on top is the parent. The parent's closure
rows are then copied down to the new comment in one statement.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional
from urllib.parse import parse_qs, urlparse

from hn_tracker.config import SelectorConfig
from hn_tracker.extract.rows import Row
from hn_tracker.models.records import Article, Comment
from hn_tracker.storage.closure_store import ClosureStore

logger = logging.getLogger(__name__)

COLOR_CLASS_RE = re.compile(r"^c[0-9a-f]{2}$")


class MalformedRowError(ValueError):
    """A comment row lacks the structure needed to extract a comment from it."""


class PathEntry(NamedTuple):
    comment_id: int
    offset: int


@dataclass
class ThreadResult:
    """Outcome of reconstructing one article's comment thread."""

    comments: List[Comment] = field(default_factory=list)
    edges: int = 0
    malformed: int = 0


def _parse_item_id(href: str) -> int:
    values = parse_qs(urlparse(href).query).get("id")
    if not values:
        raise MalformedRowError(f"no comment id in permalink {href!r}")
    try:
        return int(values[0])
    except ValueError:
        raise MalformedRowError(f"non-numeric comment id in permalink {href!r}")


def _parse_color(row: Row, selectors: SelectorConfig) -> Optional[str]:
    """
    Resolve the display color of a comment (downvoted comments are lighter).

    Older markup carries it on a font element, newer markup as a ``cXX`` class
    on the comment text.
    """
    body = selectors.comment_body
    color, found = row.attr(f"{body} {selectors.comment_font}", "color")
    if found:
        return color
    classes, found = row.attr(f"{body} {selectors.comment_text}", "class")
    if found:
        for name in classes.split():
            if COLOR_CLASS_RE.match(name):
                return name
    return None


def parse_comment_row(row: Row, article_id: int, selectors: Optional[SelectorConfig] = None) -> Comment:
    """
    Extract one comment from its row.

    Raises:
        MalformedRowError: If the indentation width, the two head links
            (user and permalink) or the body cannot be found
    """
    selectors = selectors or SelectorConfig()

    width, found = row.attr(selectors.indent, selectors.indent_attr)
    if not found:
        raise MalformedRowError("missing indentation width")
    try:
        offset = int(width)
    except ValueError:
        raise MalformedRowError(f"non-numeric indentation width {width!r}")

    links = row.select(selectors.comment_head_links)
    if len(links) != 2:
        raise MalformedRowError(f"expected 2 links in comment head, found {len(links)}")
    username = links[0].text()
    href, found = links[1].attr(None, "href")
    if not found:
        raise MalformedRowError("comment permalink has no href")
    comment_id = _parse_item_id(href)

    if row.count(selectors.comment_body) == 0:
        raise MalformedRowError("missing comment body")

    return Comment(
        comment_id=comment_id,
        username=username,
        color=_parse_color(row, selectors),
        # the reply link is page chrome, not part of the comment
        content=row.html(selectors.comment_body, exclude=selectors.reply),
        article_id=article_id,
        offset=offset,
    )


class ThreadReconstructor:
    """Stores the comments of one article together with their closure rows."""

    def __init__(
        self,
        store: ClosureStore,
        selectors: Optional[SelectorConfig] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the reconstructor.

        Args:
            store: Closure store the comments and thread rows are written through
            selectors: Selectors describing the comment row layout
            prometheus_exporter: Optional Prometheus metrics exporter
        """
        self.store = store
        self.selectors = selectors or SelectorConfig()
        self.prometheus_exporter = prometheus_exporter

    def reconstruct(self, article: Article, rows: Iterable[Row]) -> ThreadResult:
        """
        Scan an article's comment rows in page order and store the implied tree.

        Malformed rows are logged and skipped without touching the path. Store
        errors propagate, so the caller can discard the whole article.

        Args:
            article: The stored article the comments belong to
            rows: Comment rows in the order the site emitted them

        Returns:
            The stored comments and edge counts
        """
        result = ThreadResult()
        path: List[PathEntry] = []

        for position, row in enumerate(rows, start=1):
            try:
                comment = parse_comment_row(row, article.id, self.selectors)
            except MalformedRowError as e:
                result.malformed += 1
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_malformed_row()
                logger.warning(f"Skipping comment row {position} of {article.comments_link}: {e}")
                continue

            # comments at equal or deeper indentation can take no more replies
            depth = len(path)
            while depth > 0 and path[depth - 1].offset >= comment.offset:
                depth -= 1
            del path[depth:]

            comment_id = self.store.insert_comment(comment)
            self.store.insert_self_edge(comment_id)
            edges = 1

            if path:
                parent = path[-1]
                linked = self.store.insert_edges_for_reply(parent.comment_id, comment_id)
                if linked == 0:
                    logger.error(
                        f"Closure anomaly in {article.comments_link}: parent comment {parent.comment_id} "
                        f"has no thread rows, reply {comment.comment_id} (row {position}, "
                        f"offset {comment.offset}) was not linked"
                    )
                edges += linked

            path.append(PathEntry(comment_id, comment.offset))
            result.comments.append(comment)
            result.edges += edges
            if self.prometheus_exporter:
                self.prometheus_exporter.record_comment_stored(edges)
            logger.debug(f"Stored comment {comment.comment_id} at depth {len(path) - 1} (offset {comment.offset})")

        return result
