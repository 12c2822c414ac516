"""Shared pytest fixtures for querystring-sync tests."""

from datetime import datetime, timezone

import pytest

from querystring_sync.config import ENV_VARS
from querystring_sync.formats import MarkedFormat, MarkedFormatOptions
from querystring_sync.location import MemoryLocation
from querystring_sync.store import Store
from querystring_sync.sync import QueryStringSync, SyncOptions

NEW_YEAR = datetime(2024, 1, 1, tzinfo=timezone.utc)
NEW_YEAR_MS = 1704067200000


class Point:
    """Plain class instance, treated as an atomic value."""

    def __init__(self, x, y):
        self.x = x
        self.y = y


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for name in [*ENV_VARS.values(), "QS_SYNC_CONFIG", "LOG_LEVEL", "LOG_FILE"]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def marked():
    return MarkedFormat()


@pytest.fixture
def untrimmed():
    return MarkedFormat(MarkedFormatOptions(trim=False))


@pytest.fixture
def make_sync():
    """Build a location, controller and store, bound together."""

    def _make(initial, url="/", **options):
        location = MemoryLocation(url)
        sync = QueryStringSync(
            SyncOptions(**options), location, location.pathname_changed
        )
        store = Store(initial, middleware=[sync.middleware])
        sync.bind(store)
        return sync, store, location

    return _make
