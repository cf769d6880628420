"""create snapshots, articles, comments and threads tables

Revision ID: 3f9c1a7d2b40
Revises:
Create Date: 2026-10-16 12:00:00.000000

``threads`` is the closure table over ``comments``: one row per
(ancestor, descendant) pair, including each comment paired with itself.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "3f9c1a7d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("snapshot_time", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("hn_snapshot_snapshot_time", "snapshots", ["snapshot_time"])

    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("link", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("comment_count", sa.Integer(), nullable=False),
        sa.Column("comments_link", sa.Text(), nullable=False),
        sa.Column("snapshot_id", sa.Integer(), sa.ForeignKey("snapshots.id"), nullable=False),
    )
    op.create_index("hn_articles_score_index", "articles", ["score"])
    op.create_index("hn_articles_user_index", "articles", ["username"])
    op.create_index("hn_articles_comments_link_index", "articles", ["comments_link"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("comment_id", sa.Integer(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("article_id", sa.Integer(), sa.ForeignKey("articles.id"), nullable=False),
    )
    op.create_index("hn_comments_user_index", "comments", ["username"])

    op.create_table(
        "threads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ancestor", sa.Integer(), sa.ForeignKey("comments.id"), nullable=False),
        sa.Column("descendant", sa.Integer(), sa.ForeignKey("comments.id"), nullable=False),
        sa.Column("depth", sa.Integer(), nullable=False),
    )
    op.create_index("hn_threads_ancestor", "threads", ["ancestor"])
    op.create_index("hn_threads_descendant", "threads", ["descendant"])


def downgrade() -> None:
    op.drop_table("threads")
    op.drop_table("comments")
    op.drop_table("articles")
    op.drop_table("snapshots")
