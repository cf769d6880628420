"""Persistence for front page snapshots and their articles."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hn_tracker.models.orm import ArticleORM, SnapshotORM
from hn_tracker.models.records import Article, Snapshot
from hn_tracker.storage.database import StoreError

logger = logging.getLogger(__name__)


class ArticleStore:
    """Inserts snapshot and article rows through a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session

    def insert_snapshot(self, timestamp: Optional[datetime] = None) -> Snapshot:
        """
        Insert a new snapshot row.

        Args:
            timestamp: Capture time; defaults to now (UTC)

        Returns:
            The stored snapshot with its generated id
        """
        timestamp = timestamp or datetime.now(timezone.utc)
        row = SnapshotORM(snapshot_time=timestamp)
        try:
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert snapshot: {e}") from e
        logger.debug(f"Stored snapshot {row.id}")
        return Snapshot(id=row.id, timestamp=timestamp)

    def insert_article(self, article: Article) -> int:
        """
        Insert an article and record the generated id on it.

        Returns:
            The store-assigned article id
        """
        row = ArticleORM(
            rank=article.rank,
            link=article.link,
            title=article.title,
            score=article.score,
            username=article.username,
            comment_count=article.comment_count,
            comments_link=article.comments_link,
            snapshot_id=article.snapshot_id,
        )
        try:
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert article {article.comments_link!r}: {e}") from e
        article.id = row.id
        logger.debug(f"Stored article {row.id} (rank {article.rank})")
        return row.id
