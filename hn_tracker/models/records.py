"""In-memory records passed between the collector stages and the stores."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Article:
    """A ranked article from the front page, as parsed from its title and subtext rows."""

    snapshot_id: int
    rank: int = 0
    link: str = ""
    title: str = ""
    score: int = 0
    username: str = ""
    comment_count: int = 0
    comments_link: str = ""
    id: Optional[int] = None  # assigned by the store


@dataclass
class Snapshot:
    """One timestamped capture of the front page."""

    id: int
    timestamp: datetime
    articles: List[Article] = field(default_factory=list)


@dataclass
class Comment:
    """
    A user's comment on an article.

    ``comment_id`` is the identifier assigned by the site, ``id`` the one
    assigned by the store. ``offset`` is the visual indentation of the row; it
    only matters while the thread is being reconstructed and is never persisted.
    """

    comment_id: int
    username: str
    color: Optional[str]
    content: str
    article_id: int
    offset: int
    id: Optional[int] = None


@dataclass(frozen=True)
class ThreadEdge:
    """One row of the closure table: ``ancestor`` reaches ``descendant`` in ``depth`` steps."""

    id: int
    ancestor: int
    descendant: int
    depth: int
