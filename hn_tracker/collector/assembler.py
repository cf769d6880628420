"""Assembly of front page rows into stored articles."""

import logging
from typing import Iterable, Iterator, List, Optional

from hn_tracker.config import SelectorConfig
from hn_tracker.extract.rows import Row, RowKind, parse_int_prefix
from hn_tracker.models.records import Article, Snapshot
from hn_tracker.storage.article_store import ArticleStore

logger = logging.getLogger(__name__)


class ArticleAssembler:
    """
    Turns the rows of one front page fetch into articles of a snapshot.

    Each article is spread over a title row and an unclassed subtext row, and
    articles are separated by spacer rows. An article is persisted when its
    group is flushed, and only if its subtext row carried the expected links.
    """

    def __init__(
        self,
        store: ArticleStore,
        selectors: Optional[SelectorConfig] = None,
        prometheus_exporter=None,
    ):
        """
        Initialize the assembler.

        Args:
            store: Store the completed articles are written to
            selectors: Selectors describing the front page layout
            prometheus_exporter: Optional Prometheus metrics exporter
        """
        self.store = store
        self.selectors = selectors or SelectorConfig()
        self.prometheus_exporter = prometheus_exporter

    def assemble(self, snapshot: Snapshot, rows: Iterable[Row]) -> List[Article]:
        """Persist every complete article found in ``rows`` and return them in page order."""
        return list(self.iter_articles(snapshot, rows))

    def iter_articles(self, snapshot: Snapshot, rows: Iterable[Row]) -> Iterator[Article]:
        """
        Yield articles as their groups are flushed.

        Every yielded article has been stored and appended to ``snapshot.articles``.
        """
        article: Optional[Article] = None
        complete = False

        for row in rows:
            kind = row.classification()

            if kind is RowKind.SPACER:
                stored = self._flush(snapshot, article, complete)
                if stored is not None:
                    yield stored
                article, complete = None, False

            elif kind is RowKind.TITLE:
                if article is not None:
                    stored = self._flush(snapshot, article, complete)
                    if stored is not None:
                        yield stored
                article = Article(snapshot_id=snapshot.id)
                complete = False
                self._parse_title_row(article, row)

            elif kind is RowKind.SUBTEXT:
                if article is None:
                    logger.debug("Ignoring subtext row with no preceding title row")
                    continue
                complete = self._parse_subtext_row(article, row)

        stored = self._flush(snapshot, article, complete)
        if stored is not None:
            yield stored

    def _parse_title_row(self, article: Article, row: Row) -> None:
        """Set the rank, link and title of the article."""
        article.rank = parse_int_prefix(row.text(self.selectors.rank))
        article.link, _ = row.attr(self.selectors.title_link, "href")
        article.title = row.text(self.selectors.title_link)

    def _parse_subtext_row(self, article: Article, row: Row) -> bool:
        """
        Set the score, user, comment count and comments link of the article.

        Returns:
            False if the subtext holds no links, True otherwise
        """
        subtext = self.selectors.subtext
        links = row.select(f"{subtext} {self.selectors.subtext_links}")
        if not links:
            return False

        article.score = parse_int_prefix(row.text(f"{subtext} {self.selectors.score}"))
        article.username = links[0].text()
        comments = links[-1]
        article.comments_link, _ = comments.attr(None, "href")
        article.comment_count = parse_int_prefix(comments.text())
        return True

    def _flush(self, snapshot: Snapshot, article: Optional[Article], complete: bool) -> Optional[Article]:
        if article is None:
            return None
        if not complete:
            logger.info(f"Dropping incomplete article at rank {article.rank}: {article.title!r}")
            return None

        self.store.insert_article(article)
        snapshot.articles.append(article)
        if self.prometheus_exporter:
            self.prometheus_exporter.record_article_stored()
        logger.debug(f"Stored article {article.rank}. {article.title!r} ({article.comments_link})")
        return article
