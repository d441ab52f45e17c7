"""Shared pytest fixtures for Shelf tests."""
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

import asyncpg

from shelf.lib.common.cursor import CursorCodec, CursorConfig
from shelf.services.catalog import Catalog

TEST_SECRET = "test-cursor-secret"
BASE_NOW_MS = 1_760_000_000_000


class FakeClock:
    """Settable epoch-millisecond clock for cursor tests."""

    def __init__(self, now_ms: int = BASE_NOW_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cursor_config() -> CursorConfig:
    return CursorConfig(secret=TEST_SECRET)


@pytest.fixture
def codec(cursor_config: CursorConfig, clock: FakeClock) -> CursorCodec:
    """Cursor codec with a test secret and a controllable clock."""
    return CursorCodec(cursor_config, clock=clock)


@pytest.fixture
def mock_asyncpg_pool() -> AsyncMock:
    """Mock asyncpg pool."""
    pool = AsyncMock(spec=asyncpg.Pool)
    # Mock pool methods that are called directly (not through connection)
    pool.fetchval = AsyncMock()
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchrow = AsyncMock()
    return pool


@pytest.fixture
def mock_asyncpg_conn(mock_asyncpg_pool: AsyncMock) -> AsyncMock:
    """Mock asyncpg connection returned by ``pool.acquire()``."""
    conn = AsyncMock(spec=asyncpg.Connection)
    conn.fetchval = AsyncMock(return_value=None)
    conn.fetchrow = AsyncMock()
    conn.execute = AsyncMock()

    transaction = AsyncMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=None)
    conn.transaction = lambda: transaction

    mock_asyncpg_pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    mock_asyncpg_pool.acquire.return_value.__aexit__ = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def catalog_with_mocks(mock_asyncpg_pool: AsyncMock, cursor_config: CursorConfig) -> Catalog:
    """Create Catalog instance with a mocked pool."""
    return Catalog(
        pool=mock_asyncpg_pool,
        cursor_config=cursor_config,
        api_port=0,
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def catalog_client(catalog_with_mocks: Catalog) -> TestClient:
    """Create FastAPI TestClient for Catalog."""
    return TestClient(catalog_with_mocks.app)
