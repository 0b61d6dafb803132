"""Fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from warehouse.main import app
from warehouse.api.deps import get_cache, get_current_user, get_photo_storage
from warehouse.core.cache import LookupCache
from warehouse.core.database import get_db
from warehouse.services.photo_storage import PhotoStorage


@pytest.fixture
def cache():
    return LookupCache(default_ttl=60)


@pytest.fixture
def photo_storage(tmp_path):
    return PhotoStorage(str(tmp_path / "uploads"))


@pytest.fixture
def anonymous_client(session_factory, cache, photo_storage):
    """Client wired to the test database; authentication is real."""

    async def get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage

    # Startup is not triggered outside a ``with`` block, so init_db never runs
    yield TestClient(app)

    app.dependency_overrides = {}


@pytest.fixture
def client(anonymous_client, admin_user):
    """Client authenticated as the seeded admin."""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    return anonymous_client


@pytest.fixture
def login_as(client):
    """Switch the authenticated user for subsequent requests."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user

    return _login
