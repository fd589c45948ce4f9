"""Shared fixtures for mcollector tests."""

import pytest
from fastapi.testclient import TestClient

from mcollector.config import Settings
from mcollector.core.errors import StorageError, StorageUnavailableError
from mcollector.main import create_app
from mcollector.storage import DatabaseStorage, MemoryStorage, Storage


class FailingStorage(Storage):
    """Storage stub that fails every call like an unreachable backend."""

    def _fail(self):
        raise StorageError() from ConnectionError("connection refused by 10.0.0.7")

    def insert_gauge(self, name, value):
        self._fail()

    def insert_counter(self, name, delta):
        self._fail()

    def select_gauge(self, name):
        self._fail()

    def select_counter(self, name):
        self._fail()

    def insert_batch(self, metrics):
        self._fail()

    def snapshot(self):
        self._fail()

    def ping(self):
        raise StorageUnavailableError() from ConnectionError("connection refused by 10.0.0.7")


@pytest.fixture
def test_settings():
    """Settings for an in-memory server."""
    return Settings(debug=True, database_url="")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def db_storage(tmp_path):
    """SQLite-backed storage in a temporary file."""
    storage = DatabaseStorage.from_url(f"sqlite:///{tmp_path / 'metrics.db'}")
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "database"])
def any_storage(request, tmp_path):
    """Each storage backend in turn."""
    if request.param == "memory":
        yield MemoryStorage()
        return
    storage = DatabaseStorage.from_url(f"sqlite:///{tmp_path / 'metrics.db'}")
    yield storage
    storage.close()


@pytest.fixture
def app(test_settings, storage):
    return create_app(test_settings, storage=storage)


@pytest.fixture
def client(app):
    """Test client; lifespan is not run so logging config is left alone."""
    return TestClient(app)


@pytest.fixture
def failing_client(test_settings):
    return TestClient(create_app(test_settings, storage=FailingStorage()))
