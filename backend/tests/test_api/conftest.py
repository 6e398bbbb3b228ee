"""
Fixtures for API tests: TestClient with authentication and services overridden
"""
import pytest
from fastapi.testclient import TestClient

from storefront.core.auth import TokenUser, get_current_user, require_admin
from storefront.core.rate_limit import rate_limiter
from storefront.main import app


SHOPPER = TokenUser(id="user-1", email="shopper@example.com")
ADMIN = TokenUser(id="admin-1", email="admin@example.com", is_admin=True)


@pytest.fixture
def client():
    rate_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
def as_shopper(client):
    app.dependency_overrides[get_current_user] = lambda: SHOPPER
    return client


@pytest.fixture
def as_admin(client):
    app.dependency_overrides[get_current_user] = lambda: ADMIN
    app.dependency_overrides[require_admin] = lambda: ADMIN
    return client


@pytest.fixture
def override():
    """override(factory, service) -> service, registered on the app"""
    def _override(factory, service):
        app.dependency_overrides[factory] = lambda: service
        return service

    return _override
