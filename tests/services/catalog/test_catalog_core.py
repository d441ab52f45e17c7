"""Tests for Catalog core functionality - construction and lifecycle."""

import pytest
from unittest.mock import AsyncMock, patch

from fastapi import HTTPException

from shelf.lib.common.cursor import CursorConfig
from shelf.services.catalog import Catalog


class TestCatalogConstruction:

    def test_requires_dsn_or_pool(self):
        with pytest.raises(ValueError):
            Catalog(cursor_config=CursorConfig(secret="s"), cors_origins=[])

    def test_pool_not_started(self):
        catalog = Catalog(dsn="postgresql://localhost/books", cursor_config=CursorConfig(secret="s"),
                          cors_origins=[])
        with pytest.raises(RuntimeError):
            catalog.pool

    def test_paginator_is_built_once(self, catalog_with_mocks):
        assert catalog_with_mocks.paginator is catalog_with_mocks.paginator

    def test_routes_registered(self, catalog_with_mocks):
        paths = {(route.path, method) for route in catalog_with_mocks.app.routes
                 for method in getattr(route, 'methods', ())}
        assert ('/api/catalog/health', 'GET') in paths
        assert ('/api/catalog/books/search', 'GET') in paths
        assert ('/api/catalog/books/count', 'GET') in paths
        assert ('/api/catalog/books', 'POST') in paths
        assert ('/api/catalog/books/{book_id}', 'PUT') in paths
        assert ('/api/catalog/books/{book_id}', 'DELETE') in paths

    def test_cors_origins_from_environment(self, monkeypatch, mock_asyncpg_pool):
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        catalog = Catalog(pool=mock_asyncpg_pool, cursor_config=CursorConfig(secret="s"))
        cors = next(m for m in catalog.app.user_middleware if m.cls.__name__ == "CORSMiddleware")
        assert cors.kwargs["allow_origins"] == ["https://a.example", "https://b.example"]


class TestCatalogLifecycle:

    @pytest.mark.asyncio
    async def test_start_creates_pool_and_starts_api(self, mock_asyncpg_pool):
        catalog = Catalog(dsn="postgresql://localhost/books", cursor_config=CursorConfig(secret="s"),
                          cors_origins=[])

        with patch('shelf.lib.common.database_handler.asyncpg.create_pool',
                   new=AsyncMock(return_value=mock_asyncpg_pool)) as create_pool, \
                patch.object(catalog, 'start_api_server', new_callable=AsyncMock):
            await catalog.start()

            create_pool.assert_awaited_once()
            catalog.start_api_server.assert_called_once()
            assert catalog.pool is mock_asyncpg_pool

    @pytest.mark.asyncio
    async def test_stop_closes_owned_pool(self, mock_asyncpg_pool):
        mock_asyncpg_pool.is_closing = lambda: False
        catalog = Catalog(dsn="postgresql://localhost/books", cursor_config=CursorConfig(secret="s"),
                          cors_origins=[])

        with patch('shelf.lib.common.database_handler.asyncpg.create_pool',
                   new=AsyncMock(return_value=mock_asyncpg_pool)), \
                patch.object(catalog, 'start_api_server', new_callable=AsyncMock), \
                patch.object(catalog, 'stop_api_server', new_callable=AsyncMock):
            await catalog.start()
            await catalog.stop()

        mock_asyncpg_pool.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_leaves_borrowed_pool_open(self, catalog_with_mocks, mock_asyncpg_pool):
        with patch.object(catalog_with_mocks, 'stop_api_server', new_callable=AsyncMock):
            await catalog_with_mocks.stop()

            catalog_with_mocks.stop_api_server.assert_called_once()
        mock_asyncpg_pool.close.assert_not_called()


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_ok(self, catalog_with_mocks, mock_asyncpg_pool):
        mock_asyncpg_pool.fetchval = AsyncMock(return_value=1)

        response = await catalog_with_mocks.handle_health()

        assert response.service == "Catalog"
        assert response.status == "ok"
        assert response.database == "up"
        mock_asyncpg_pool.fetchval.assert_awaited_once_with("SELECT 1")

    @pytest.mark.asyncio
    async def test_health_database_down(self, catalog_with_mocks, mock_asyncpg_pool):
        mock_asyncpg_pool.fetchval = AsyncMock(side_effect=ConnectionRefusedError("db down"))

        with pytest.raises(HTTPException) as exc_info:
            await catalog_with_mocks.handle_health()

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_health_before_pool_started(self):
        catalog = Catalog(dsn="postgresql://localhost/books", cursor_config=CursorConfig(secret="s"),
                          cors_origins=[])

        with pytest.raises(HTTPException) as exc_info:
            await catalog.handle_health()

        assert exc_info.value.status_code == 503
