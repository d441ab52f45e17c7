"""Shared database handler with pooled connection lifecycle helpers."""

import asyncpg
from typing import Optional
from abc import ABC, abstractmethod

import logging
logger = logging.getLogger(__name__)


class DatabaseHandler(ABC):
    """Own or borrow an asyncpg pool for a service."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-friendly identifier used for logging."""
        ...

    def __init__(
            self,
            dsn: str | None = None,
            pool: Optional[asyncpg.Pool] = None,
            min_pool_size: int = 1,
            max_pool_size: int = 10) -> None:
        """Configure the handler with either a DSN or an existing pool.

        Args:
            dsn (str | None): Database connection string used to create a pool.
            pool (asyncpg.Pool | None): Pre-existing pool to reuse; it is not
                closed by ``close_pool``.
            min_pool_size (int): Minimum connections in an owned pool.
            max_pool_size (int): Maximum connections in an owned pool.

        Raises:
            ValueError: If neither ``dsn`` nor ``pool`` is provided.
        """
        if not dsn and not pool:
            logger.error(f"{self.name} was initialized without DSN or Pool for database connection.")
            raise ValueError("Provide either dsn or pool")
        self._dsn = dsn
        self._pool: Optional[asyncpg.Pool] = pool
        self._owns_pool = pool is None
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size

    @property
    def pool(self) -> asyncpg.Pool:
        """Return the active pool or raise if it is not initialized."""
        if self._pool is None:
            raise RuntimeError(f"{self.name} pool not started yet")
        return self._pool

    async def init_pool(self) -> None:
        """Create the asyncpg pool if this handler owns it."""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                self._dsn, min_size=self._min_pool_size, max_size=self._max_pool_size
            )
            logger.info(f"{self.name} database pool created")

    async def close_pool(self) -> None:
        """Close the pool if this handler created it."""
        if self._owns_pool and self._pool is not None and not self._pool.is_closing():
            await self._pool.close()
            self._pool = None
            logger.info(f"{self.name} database pool closed")
