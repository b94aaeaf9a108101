"""
Pytest configuration and shared fixtures.

Provides:
- store: an initialized DocumentStore in a temporary directory
- fake_api: in-memory Mountain Project Data API
- importer: TickImporter wired to both of the above
"""
import pytest

from climbing_ticks.api import MountainProjectClient
from climbing_ticks.ingest import TickImporter
from climbing_ticks.storage import DocumentStore

from testdata import FakeMountainProject

TEST_USER_ID = "test-uid"


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    store = DocumentStore(tmp_path / "test.db")
    store.initialize()
    return store


@pytest.fixture
def fake_api() -> FakeMountainProject:
    return FakeMountainProject()


@pytest.fixture
def client(fake_api) -> MountainProjectClient:
    return MountainProjectClient(session=fake_api, sleep_seconds=0)


@pytest.fixture
def importer(store, client) -> TickImporter:
    return TickImporter(store, TEST_USER_ID, client=client)
