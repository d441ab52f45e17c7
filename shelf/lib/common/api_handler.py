"""Shared FastAPI handler base with lifecycle helpers."""

from typing import Optional, Sequence
from abc import ABC, abstractmethod
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import asyncio
import os

import logging
logger = logging.getLogger(__name__)


class APIHandler(ABC):
    """Serve a FastAPI application and manage its lifecycle."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-friendly service name used for logging and titles."""
        ...

    def __init__(
            self,
            api_host: str = '0.0.0.0',
            api_port: int = 8080,
            cors_origins: Optional[Sequence[str]] = None) -> None:
        """Configure and create the FastAPI application.

        Args:
            api_host (str): Host interface to bind to.
            api_port (int): Port number to expose the API on.
            cors_origins (Sequence[str] | None): Allowed origins for the web
                client. Defaults to the comma-separated ``CORS_ORIGINS``
                environment variable, or ``http://localhost:3000``.
        """
        self._api_host = api_host
        self._api_port = api_port
        self._api_app = FastAPI(title=f"{self.name} API")
        self._server: Optional[uvicorn.Server] = None
        self._server_task: Optional[asyncio.Task] = None

        if cors_origins is None:
            cors_origins_env = os.getenv("CORS_ORIGINS", "http://localhost:3000")
            cors_origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
        logger.debug(f"{self.name} CORS allowed origins: {list(cors_origins)}")

        self._api_app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_routes()

    @property
    def app(self) -> FastAPI:
        """The FastAPI application, e.g. for ``TestClient``."""
        return self._api_app

    @abstractmethod
    def _setup_routes(self) -> None:
        """Register API routes on ``self._api_app``."""
        pass

    async def start_api_server(self) -> None:
        """Start the API server in a background task."""
        config = uvicorn.Config(
            self._api_app,
            host=self._api_host,
            port=self._api_port,
            log_level="info",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve())
        logger.info(f"{self.name} API server started on http://{self._api_host}:{self._api_port}")

    async def stop_api_server(self) -> None:
        """Stop the API server and await shutdown."""
        if self._server:
            self._server.should_exit = True
            if self._server_task:
                try:
                    await asyncio.wait_for(self._server_task, timeout=5.0)
                except asyncio.TimeoutError:
                    logger.warning(f"{self.name} API server shutdown timeout")
                finally:
                    self._server_task = None
            logger.info(f"{self.name} API server stopped.")
