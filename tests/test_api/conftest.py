"""Fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from api.deps import get_api_settings, get_store
from api.main import app
from tests.constants import SUPERUSER_API_KEY

@pytest.fixture
def client(store, test_settings):
    """FastAPI TestClient authenticated as the super user, on a fresh seeded store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_api_settings] = lambda: test_settings
    with TestClient(app, headers={"X-API-Key": SUPERUSER_API_KEY}) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture
def anonymous_client(store, test_settings):
    """FastAPI TestClient without credentials."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_api_settings] = lambda: test_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
