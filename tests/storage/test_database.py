"""Tests for engine and session management."""

import pytest
from sqlalchemy import func, select, text

from hn_tracker.config import PostgresConfig
from hn_tracker.models.orm import SnapshotORM
from hn_tracker.storage.database import Database, StoreError


def snapshot_count(database):
    with database.session() as session:
        return session.scalar(select(func.count()).select_from(SnapshotORM))


class TestDatabase:
    """Test cases for Database."""

    def test_session_commits(self, database):
        with database.session() as session:
            session.add(SnapshotORM())

        assert snapshot_count(database) == 1

    def test_session_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            with database.session() as session:
                session.add(SnapshotORM())
                session.flush()
                raise RuntimeError("processing failed")

        assert snapshot_count(database) == 0

    def test_sqlalchemy_errors_become_store_errors(self, database):
        with pytest.raises(StoreError):
            with database.session() as session:
                session.execute(text("SELECT * FROM missing_table"))

    def test_foreign_keys_enforced_on_sqlite(self, database):
        with database.engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_check_connection(self, database):
        database.check_connection()

    def test_check_connection_failure(self, tmp_path):
        db = Database(f"sqlite:///{tmp_path}/missing/dir/db.sqlite")

        with pytest.raises(StoreError, match="Database connection failed"):
            db.check_connection()

    def test_create_schema_is_idempotent(self, database):
        database.create_schema()

        with database.engine.connect() as conn:
            tables = {row[0] for row in conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))}
        assert {"snapshots", "articles", "comments", "threads"} <= tables

    def test_from_config_sqlite_url(self):
        db = Database.from_config(PostgresConfig(url="sqlite://"))

        assert db.engine.dialect.name == "sqlite"
        db.dispose()

    def test_from_config_postgres_pool_settings(self, mocker):
        create_engine = mocker.patch("hn_tracker.storage.database.create_engine")
        create_engine.return_value.dialect.name = "postgresql"
        pg_config = PostgresConfig(host="db", port=5433, database="hn", user="u", password="p", pool_size=3)

        Database.from_config(pg_config)

        create_engine.assert_called_once_with(
            "postgresql+psycopg2://u:p@db:5433/hn",
            pool_pre_ping=True,
            pool_size=3,
            max_overflow=10,
            pool_recycle=1800,
        )
