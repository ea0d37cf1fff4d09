"""
Test configuration and fixtures for the LinkSnap storage layer and API.
This centralizes all test setup, making individual tests clean.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import app
from linksnap_app.schemas.link import ShortLinkRecord
from linksnap_app.storage.factory import StorageFactory
from linksnap_app.storage.strategies import JSONFileStorage, SQLStorage


class FakeClock:
    """Deterministic replacement for the storage clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=1):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def make_record(short_code="abc123", original_url="https://example.com", created_at=None, **fields):
    """Build a fresh record the way the creation flow does."""
    return ShortLinkRecord(
        short_code=short_code,
        original_url=original_url,
        qr_code_image=fields.pop("qr_code_image", "data:image/png;base64,iVBORw0KGgo="),
        clicks=fields.pop("clicks", 0),
        created_at=created_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
        last_accessed=fields.pop("last_accessed", None),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def json_storage(tmp_path, clock):
    """JSON file storage in a fresh directory (created by initialize)."""
    storage = JSONFileStorage(tmp_path / "data" / "urls.json", clock=clock)
    asyncio.run(storage.initialize())
    return storage


@pytest.fixture
def sql_storage(tmp_path, clock):
    """
    SQL storage on a throwaway SQLite file.
    Closed after the test so no pooled connection leaks between tests.
    """
    storage = SQLStorage(f"sqlite:///{tmp_path / 'test.db'}", clock=clock)
    asyncio.run(storage.initialize())
    try:
        yield storage
    finally:
        asyncio.run(storage.close())


@pytest.fixture(params=["json", "sql"])
def storage(request):
    """Every contract test runs against both backends."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture(autouse=True)
def reset_storage_factory():
    """Each test starts without a memoized storage instance."""
    asyncio.run(StorageFactory.reset())
    yield
    asyncio.run(StorageFactory.reset())


@pytest.fixture
def client(json_storage):
    """
    Create a test client backed by the JSON storage fixture.
    This is the main fixture that API tests will use.
    """
    StorageFactory.set_storage(json_storage)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def record_factory():
    return make_record
