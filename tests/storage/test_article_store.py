"""Tests for the snapshot and article store."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from hn_tracker.models.orm import ArticleORM, SnapshotORM
from hn_tracker.models.records import Article
from hn_tracker.storage.article_store import ArticleStore
from hn_tracker.storage.database import StoreError


class TestArticleStore:
    """Test cases for ArticleStore."""

    def test_insert_snapshot(self, database):
        captured_at = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)

        with database.session() as session:
            snapshot = ArticleStore(session).insert_snapshot(captured_at)

        assert snapshot.id is not None
        assert snapshot.timestamp == captured_at
        assert snapshot.articles == []
        with database.session() as session:
            assert session.scalars(select(SnapshotORM.id)).all() == [snapshot.id]

    def test_snapshot_ids_increase(self, database):
        with database.session() as session:
            store = ArticleStore(session)
            first = store.insert_snapshot()
            second = store.insert_snapshot()

        assert second.id > first.id
        assert first.timestamp.tzinfo is not None

    def test_insert_article(self, database):
        with database.session() as session:
            store = ArticleStore(session)
            snapshot = store.insert_snapshot()
            article = Article(
                snapshot_id=snapshot.id,
                rank=3,
                link="https://example.com/a",
                title="An article",
                score=99,
                username="alice",
                comment_count=12,
                comments_link="item?id=42",
            )
            article_id = store.insert_article(article)

        assert article.id == article_id
        with database.session() as session:
            row = session.get(ArticleORM, article_id)
            assert (row.rank, row.title, row.score, row.username, row.comment_count, row.comments_link) == (
                3, "An article", 99, "alice", 12, "item?id=42"
            )
            assert row.snapshot_id == snapshot.id

    def test_insert_article_unknown_snapshot(self, database):
        with pytest.raises(StoreError):
            with database.session() as session:
                ArticleStore(session).insert_article(Article(snapshot_id=12345, rank=1))

    def test_flush_failure_raises_store_error(self, mocker):
        session = mocker.MagicMock()
        session.flush.side_effect = IntegrityError("INSERT", {}, Exception("null value"))

        with pytest.raises(StoreError, match="Failed to insert snapshot"):
            ArticleStore(session).insert_snapshot()
