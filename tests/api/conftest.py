"""Fixtures for HTTP API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

import workstore.dashboard as dash_module
from workstore.dashboard import create_app
from workstore.store import WorkItemStore


@pytest.fixture
async def client(populated_store: WorkItemStore) -> AsyncIterator[AsyncClient]:
    """Test client backed by the populated in-memory store."""
    dash_module._store = populated_store
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._store = None


@pytest.fixture
async def bare_client() -> AsyncIterator[AsyncClient]:
    """Test client with no store configured."""
    dash_module._store = None
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
