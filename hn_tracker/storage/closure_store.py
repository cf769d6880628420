"""
Closure table storage for comment threads.

The ``threads`` relation holds, for every comment, one row per ancestor
(including the comment itself at depth 0). Ancestor and descendant lookups
are therefore single indexed queries, never recursive walks.
"""

import logging
from typing import List

from sqlalchemy import Integer, insert, literal, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hn_tracker.models.orm import CommentORM, ThreadORM
from hn_tracker.models.records import Comment, ThreadEdge
from hn_tracker.storage.database import StoreError

logger = logging.getLogger(__name__)


def _to_edge(row: ThreadORM) -> ThreadEdge:
    return ThreadEdge(id=row.id, ancestor=row.ancestor, descendant=row.descendant, depth=row.depth)


class ClosureStore:
    """Append-only writer and reader for comments and their closure rows."""

    def __init__(self, session: Session):
        self.session = session

    def insert_comment(self, comment: Comment) -> int:
        """
        Insert a comment and record the store-assigned id on it.

        Returns:
            The store-assigned comment id
        """
        row = CommentORM(
            comment_id=comment.comment_id,
            username=comment.username,
            color=comment.color,
            content=comment.content,
            article_id=comment.article_id,
        )
        try:
            self.session.add(row)
            self.session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert comment {comment.comment_id}: {e}") from e
        comment.id = row.id
        return row.id

    def insert_self_edge(self, comment_id: int) -> None:
        """Insert the depth 0 row that makes a comment its own ancestor."""
        try:
            self.session.add(ThreadORM(ancestor=comment_id, descendant=comment_id, depth=0))
            self.session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert self edge for comment {comment_id}: {e}") from e

    def insert_edges_for_reply(self, parent_id: int, child_id: int) -> int:
        """
        Copy every ancestor row of ``parent_id`` down to ``child_id`` one level deeper.

        Runs as a single INSERT ... SELECT statement, so either the whole
        ancestor chain is written or none of it is.

        Args:
            parent_id: Store id of the comment being replied to
            child_id: Store id of the reply

        Returns:
            Number of closure rows inserted
        """
        ancestors = select(
            ThreadORM.ancestor,
            literal(child_id, type_=Integer),
            ThreadORM.depth + 1,
        ).where(ThreadORM.descendant == parent_id)
        stmt = insert(ThreadORM.__table__).from_select(["ancestor", "descendant", "depth"], ancestors)
        try:
            result = self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to link comment {child_id} under {parent_id}: {e}") from e
        return result.rowcount

    def ancestors_of(self, comment_id: int) -> List[ThreadEdge]:
        """All closure rows whose descendant is ``comment_id``, nearest ancestor first."""
        stmt = (
            select(ThreadORM)
            .where(ThreadORM.descendant == comment_id)
            .order_by(ThreadORM.depth, ThreadORM.id)
        )
        try:
            return [_to_edge(row) for row in self.session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query ancestors of comment {comment_id}: {e}") from e

    def descendants_of(self, comment_id: int) -> List[ThreadEdge]:
        """All closure rows whose ancestor is ``comment_id``, ordered by depth."""
        stmt = (
            select(ThreadORM)
            .where(ThreadORM.ancestor == comment_id)
            .order_by(ThreadORM.depth, ThreadORM.descendant)
        )
        try:
            return [_to_edge(row) for row in self.session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query descendants of comment {comment_id}: {e}") from e
