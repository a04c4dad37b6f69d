"""Shared pytest fixtures for Bonsai tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from bonsai.db.connection import Database
from bonsai.main import app
from bonsai.trees.router import get_tree_store
from bonsai.trees.service import TreeStore


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def store(db):
    """TreeStore backed by the in-memory database."""
    return TreeStore(db)


@pytest.fixture
async def client(store):
    """Async test client with the in-memory store wired into the app."""
    app.dependency_overrides[get_tree_store] = lambda: store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
