"""Catalog service core: book CRUD and keyset-paginated search."""

from typing import Optional, Sequence

import asyncpg
from fastapi import HTTPException

from shelf.lib.common.api_handler import APIHandler
from shelf.lib.common.cursor import CursorCodec, CursorConfig
from shelf.lib.common.database_handler import DatabaseHandler
from shelf.services.catalog.book_query import build_book_paginator
from shelf.services.catalog.handlers import BookHandlersMixin, SearchHandlersMixin
from shelf.services.catalog.schemas import (
    BookCountResponse, BookItem, HealthResponse, PaginatedBooksResponse
)
from shelf.services.catalog.utils import KeysetPaginator

import logging
logger = logging.getLogger(__name__)


class Catalog(
    BookHandlersMixin,
    SearchHandlersMixin,
    DatabaseHandler,
    APIHandler,
):
    """Serve the book catalog REST API."""
    name = "Catalog"

    def __init__(
            self,
            dsn: str | None = None,
            pool: Optional[asyncpg.Pool] = None,
            cursor_config: CursorConfig = CursorConfig(),
            api_host: str = '0.0.0.0',
            api_port: int = 8080,
            cors_origins: Optional[Sequence[str]] = None) -> None:
        """Create a Catalog instance.

        Args:
            dsn (str | None): Database DSN for internal pool creation.
            pool (asyncpg.Pool | None): Existing pool to reuse.
            cursor_config (CursorConfig): Cursor signing secret and lifetime.
            api_host (str): Host interface for the API.
            api_port (int): Port number for the API.
            cors_origins (Sequence[str] | None): Allowed web client origins.
        """
        self.cursor_codec = CursorCodec(cursor_config)
        self._paginator: Optional[KeysetPaginator] = None

        DatabaseHandler.__init__(self, dsn=dsn, pool=pool)
        APIHandler.__init__(self, api_host=api_host, api_port=api_port, cors_origins=cors_origins)

    @property
    def paginator(self) -> KeysetPaginator:
        """Book paginator, bound to the pool on first use."""
        if self._paginator is None:
            self._paginator = build_book_paginator(self.pool, self.cursor_codec)
        return self._paginator

    def _setup_routes(self) -> None:
        """Define API routes for the Catalog."""
        logger.info("Catalog: Setting up API routes")

        router = self._api_app.router
        router.add_api_route(
            '/api/catalog/health',
            self.handle_health,
            methods=['GET'],
            response_model=HealthResponse
        )
        # Fixed paths first so they are not captured by /books/{book_id}
        router.add_api_route(
            '/api/catalog/books/search',
            self.handle_search_books,
            methods=['GET'],
            response_model=PaginatedBooksResponse,
            response_model_exclude_none=True
        )
        router.add_api_route(
            '/api/catalog/books/count',
            self.handle_count_books,
            methods=['GET'],
            response_model=BookCountResponse
        )
        router.add_api_route(
            '/api/catalog/books',
            self.handle_search_books,
            methods=['GET'],
            response_model=PaginatedBooksResponse,
            response_model_exclude_none=True,
            deprecated=True
        )
        router.add_api_route(
            '/api/catalog/books',
            self.handle_create_book,
            methods=['POST'],
            response_model=BookItem,
            status_code=201
        )
        router.add_api_route(
            '/api/catalog/books/{book_id}',
            self.handle_get_book,
            methods=['GET'],
            response_model=BookItem
        )
        router.add_api_route(
            '/api/catalog/books/{book_id}',
            self.handle_update_book,
            methods=['PUT'],
            response_model=BookItem
        )
        router.add_api_route(
            '/api/catalog/books/{book_id}',
            self.handle_delete_book,
            methods=['DELETE'],
            status_code=204
        )

    async def handle_health(self) -> HealthResponse:
        """Readiness endpoint; 503 when the database does not answer."""
        try:
            await self.pool.fetchval("SELECT 1")
        except Exception as e:
            logger.warning(f"Catalog.handle_health: Database check failed: {e}")
            raise HTTPException(status_code=503, detail="Database unavailable")
        return HealthResponse(service=self.name, status="ok", database="up")

    # OBJECT LIFECYCLE
    # ---------------------------------------------------------------------
    async def start(self) -> None:
        """Open the database pool, then start serving."""
        await self.init_pool()
        await self.start_api_server()

    async def stop(self) -> None:
        """Stop serving, then close the database pool."""
        await self.stop_api_server()
        await self.close_pool()
