"""Shared fixtures: an in-memory database and a fake clock."""

from typing import List

import pytest
from sqlalchemy.pool import StaticPool

from hn_tracker.config import Config
from hn_tracker.storage.database import Database


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def database():
    """SQLite database shared across sessions, with the schema created."""
    db = Database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.create_schema()
    yield db
    db.dispose()
