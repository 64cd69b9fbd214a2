"""
Pytest fixtures for Platform Analyzer tests. Each app gets its own settings and comment store.
"""

from __future__ import annotations

import pytest

from platform_analyzer.settings import Settings

TOKEN = "test-token"


@pytest.fixture
def settings() -> Settings:
    return Settings(api_tokens=frozenset({TOKEN}), gemini_api_key=None)


@pytest.fixture
def app(settings):
    from platform_analyzer.main import create_app

    return create_app(settings)


@pytest.fixture
def client(app):
    """FastAPI TestClient bound to a fresh app (server-side gating)."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def client_mode_client():
    """TestClient for an app using client-side (overlay) gating."""
    from fastapi.testclient import TestClient

    from platform_analyzer.main import create_app

    return TestClient(create_app(Settings(gating_mode="client", api_tokens=frozenset({TOKEN}))))


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TOKEN}"}
