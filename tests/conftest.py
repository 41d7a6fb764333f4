"""
Shared fixtures.

Route tests run against the real FastAPI app with auth dependencies
overridden and data access monkeypatched in the route modules, so no
PostgreSQL or MongoDB server is needed.
"""

import pytest
from fastapi.testclient import TestClient

from talentbridge.main import app
from talentbridge.core.auth import get_current_user, get_optional_user


@pytest.fixture
def client():
    """Test client without lifespan events (no MongoDB index creation)."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate requests as the given user dict."""
    def _login(user: dict) -> dict:
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        return user
    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous():
    app.dependency_overrides[get_optional_user] = lambda: None
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def no_activity(monkeypatch):
    """Silence activity writes in the modules that record them."""
    recorded = []

    def fake_record(*args, **kwargs):
        recorded.append(args)
        return 1

    for module in (
        "talentbridge.api.routes.job_routes",
        "talentbridge.api.routes.application_routes",
        "talentbridge.api.routes.event_routes",
        "talentbridge.api.routes.employer_routes",
        "talentbridge.api.routes.university_routes",
        "talentbridge.api.routes.organization_routes",
        "talentbridge.services.application_service",
    ):
        monkeypatch.setattr(f"{module}.record_activity", fake_record)
    return recorded
