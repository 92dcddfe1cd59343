"""
Shared pytest fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from todotoday.infrastructure.local.database import get_session_factory, init_db
from todotoday.infrastructure.local.key_value_store import SqliteKeyValueStore
from todotoday.infrastructure.local.remote_store import InMemoryRemoteStore
from todotoday.services.local_store import LocalStore


class FakeClock:
    """Deterministic clock: every call returns a time one second later."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def test_user_id() -> str:
    return "test-user"


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across connections of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield get_session_factory(engine)
    engine.dispose()


@pytest.fixture
def kv_store(session_factory) -> SqliteKeyValueStore:
    return SqliteKeyValueStore(session_factory=session_factory)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(kv_store, clock) -> LocalStore:
    local_store = LocalStore(kv_store, key_prefix="test", clock=clock)
    local_store.load()
    return local_store


@pytest.fixture
def remote_store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()
