"""SQLAlchemy ORM models for snapshots, articles, comments and the thread closure table."""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import TIMESTAMP


class Base(DeclarativeBase):
    pass


class SnapshotORM(Base):
    """
    One capture of the front page.

    Schema:
      id             SERIAL PRIMARY KEY
      snapshot_time  TIMESTAMPTZ NOT NULL DEFAULT now()
    """
    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("hn_snapshot_snapshot_time", "snapshot_time"),
    )

    def __repr__(self) -> str:
        return f"<SnapshotORM(id={self.id}, snapshot_time='{self.snapshot_time}')>"


class ArticleORM(Base):
    """A ranked article belonging to exactly one snapshot."""
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    link: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False)
    comments_link: Mapped[str] = mapped_column(Text, nullable=False)
    snapshot_id: Mapped[int] = mapped_column(Integer, ForeignKey("snapshots.id"), nullable=False)

    __table_args__ = (
        Index("hn_articles_score_index", "score"),
        Index("hn_articles_user_index", "username"),
        Index("hn_articles_comments_link_index", "comments_link"),
    )

    def __repr__(self) -> str:
        return f"<ArticleORM(id={self.id}, rank={self.rank}, title='{self.title}')>"


class CommentORM(Base):
    """A comment on an article. ``comment_id`` is the site's identifier."""
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    comment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    article_id: Mapped[int] = mapped_column(Integer, ForeignKey("articles.id"), nullable=False)

    __table_args__ = (
        Index("hn_comments_user_index", "username"),
    )

    def __repr__(self) -> str:
        return f"<CommentORM(id={self.id}, comment_id={self.comment_id}, username='{self.username}')>"


class ThreadORM(Base):
    """
    Closure table over comments.

    Every comment has a self row (ancestor = descendant, depth 0) and one row
    per ancestor at the corresponding path length. Rows are only ever inserted.
    """
    __tablename__ = "threads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ancestor: Mapped[int] = mapped_column(Integer, ForeignKey("comments.id"), nullable=False)
    descendant: Mapped[int] = mapped_column(Integer, ForeignKey("comments.id"), nullable=False)
    depth: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("hn_threads_ancestor", "ancestor"),
        Index("hn_threads_descendant", "descendant"),
    )

    def __repr__(self) -> str:
        return f"<ThreadORM(ancestor={self.ancestor}, descendant={self.descendant}, depth={self.depth})>"
