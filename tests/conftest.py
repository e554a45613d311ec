"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from resultscache.services.cache import REQUIRED_ATTRS, ResultsCache
from resultscache.storage.backend import StorageBackend
from resultscache.storage.sqlite_store import SQLiteBlobStore


class FakeClock:
    """Simulated UTC clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 19, 0, tzinfo=timezone.utc))


@pytest.fixture
def backend() -> MagicMock:
    """A mocked storage backend; write/update report success by default."""
    mock = MagicMock(spec=StorageBackend)
    mock.all_keys.return_value = set()
    mock.all_values.return_value = {}
    mock.read_attribute.return_value = None
    mock.write.return_value = True
    mock.update.return_value = True
    return mock


@pytest.fixture
def cache(backend) -> ResultsCache:
    return ResultsCache(backend)


@pytest.fixture
def store():
    s = SQLiteBlobStore(":memory:", REQUIRED_ATTRS)
    yield s
    s.close()
