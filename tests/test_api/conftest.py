"""Fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from folio.api import create_app
from folio.api.deps import build_container
from folio.core.errors import UpstreamError

ADMIN_HEADERS = {"Authorization": "Bearer admin-token"}


@pytest.fixture
def container(settings, cache, mock_client):
    """Services wired to a fake GitHub client."""
    container = build_container(settings, cache=cache)
    container.github = mock_client
    container.sync_service.client = mock_client
    mock_client.get_stats.side_effect = UpstreamError("not stubbed")
    return container


@pytest.fixture
def client(container):
    app = create_app(container=container)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
