"""
SQLAlchemy engine and session management.

A ``Database`` is created once at startup and handed explicitly to whatever
needs a session; there is no module-level engine.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hn_tracker.config import PostgresConfig
from hn_tracker.models.orm import Base

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when an insert or query against the relational store fails."""


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and the session factory for one database URL."""

    def __init__(self, url: str, **engine_kwargs: Any):
        """
        Create the engine. No connection is opened until first use.

        Args:
            url: SQLAlchemy database URL
            **engine_kwargs: Extra keyword arguments for ``create_engine``
        """
        self.url = url
        self.engine = create_engine(url, pool_pre_ping=True, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_config(cls, pg_config: PostgresConfig) -> "Database":
        """Create a database from the PostgreSQL section of the configuration."""
        engine_kwargs = {}
        if pg_config.is_postgres:
            engine_kwargs = {
                "pool_size": pg_config.pool_size,
                "max_overflow": pg_config.max_overflow,
                "pool_recycle": pg_config.pool_recycle,
            }
        return cls(pg_config.database_url, **engine_kwargs)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Provide a session for one unit of work.

        The session is committed on successful exit and rolled back if the block
        raises, so everything written inside it becomes visible all at once or
        not at all. SQLAlchemy errors are re-raised as ``StoreError``.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def check_connection(self) -> None:
        """
        Run a trivial query against the database.

        Raises:
            StoreError: If the database cannot be reached
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError(f"Database connection failed: {e}") from e
        logger.info(f"Database connection test successful ({self.engine.url.render_as_string(hide_password=True)})")

    def create_schema(self) -> None:
        """Create the snapshots, articles, comments and threads tables if they do not exist."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create schema: {e}") from e
        logger.info("Database schema is in place")

    def dispose(self) -> None:
        self.engine.dispose()
