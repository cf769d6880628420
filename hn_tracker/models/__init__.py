from hn_tracker.models.orm import ArticleORM, Base, CommentORM, SnapshotORM, ThreadORM
from hn_tracker.models.records import Article, Comment, Snapshot, ThreadEdge

__all__ = [
    "Article",
    "ArticleORM",
    "Base",
    "Comment",
    "CommentORM",
    "Snapshot",
    "SnapshotORM",
    "ThreadEdge",
    "ThreadORM",
]
