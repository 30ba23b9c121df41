"""
Shared fixtures: small hand-built levels and an API client that never
touches PostgreSQL or Redis.
"""

import pytest
from fastapi.testclient import TestClient

from flow_puzzle.database import get_db, get_redis
from flow_puzzle.main import app
from flow_puzzle.middleware.security import limiter
from flow_puzzle.services.puzzle import build_puzzle


class FakeRedis:
    """In-memory stand-in for the redis.asyncio calls the API makes."""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True


@pytest.fixture
def rows_puzzle():
    """
    4x3 level, one color per row:

        0 0 0 0
        1 1 1 1
        2 2 2 2
    """
    return build_puzzle(4, 3, [
        (0, [0, 1, 2, 3]),
        (1, [4, 5, 6, 7]),
        (2, [8, 9, 10, 11]),
    ])


@pytest.fixture
def shifted_rows_puzzle():
    """Same routing as rows_puzzle with the colors rotated."""
    return build_puzzle(4, 3, [
        (1, [0, 1, 2, 3]),
        (2, [4, 5, 6, 7]),
        (0, [8, 9, 10, 11]),
    ])


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client(fake_redis):
    async def override_get_db():
        yield None

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    limiter.reset()

    # No context manager: the lifespan (init_db) must not run
    yield TestClient(app)

    app.dependency_overrides.clear()
