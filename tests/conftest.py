"""
tests/conftest.py
Shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from voice_relay.core.config import get_settings
from voice_relay.main import app
from voice_relay.routers.stream import get_upstream_transport

from tests.fakes import FakeUpstream, make_settings


@pytest.fixture
def client_factory():
    """TestClient bound to a settings snapshot and, optionally, a fake upstream."""
    def _make(upstream: FakeUpstream | None = None, **settings_overrides) -> TestClient:
        snapshot = make_settings(**settings_overrides)
        app.dependency_overrides[get_settings] = lambda: snapshot
        if upstream is not None:
            app.dependency_overrides[get_upstream_transport] = upstream.transport
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
