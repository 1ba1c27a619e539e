"""
Web Server Module for the CXA bridge.

This module provides the WebServer class that creates and manages the
FastAPI application, registers all routes, and runs uvicorn in the
background of the bridge's event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import uvicorn
from fastapi import Depends, FastAPI

from cxabridge import __version__
from cxabridge.web.auth import require_auth
from cxabridge.web.routes.status import register_status_routes

if TYPE_CHECKING:
    from cxabridge.amplifier.dispatcher import CommandDispatcher
    from cxabridge.amplifier.state import DeviceStateStore
    from cxabridge.amplifier.transport import SerialTransport
    from cxabridge.config import AuthConfig

logger = logging.getLogger(__name__)


class WebServer:
    """
    FastAPI-based web server for the bridge.

    Serves the status/control API and an unauthenticated health check.
    """

    def __init__(
        self,
        store: DeviceStateStore,
        dispatcher: CommandDispatcher,
        transport: SerialTransport | None = None,
        auth: AuthConfig | None = None,
    ) -> None:
        """
        Initialize the WebServer.

        Args:
            store: Amplifier state store
            dispatcher: Command dispatcher for POST requests
            transport: Optional serial transport, reported by /health
            auth: Optional Basic auth settings
        """
        self.store = store
        self.dispatcher = dispatcher
        self.transport = transport
        self.auth = auth

        # Create FastAPI app
        self.app = FastAPI(
            title="CXA Bridge",
            description="HTTP control for Cambridge Audio CXA amplifiers",
            version=__version__,
        )
        self.app.state.auth = auth

        # Server state
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._host = "0.0.0.0"
        self._port = 8080

        # Register routes
        self._register_routes()

    def _register_routes(self) -> None:
        """Register all routes with the FastAPI app."""

        # Health check
        @self.app.get("/health")
        async def health_check() -> dict[str, str | bool]:
            """Health check endpoint."""
            serial_open = self.transport.is_open if self.transport is not None else False
            return {"status": "ok", "serial": serial_open}

        register_status_routes(
            self.app,
            store=self.store,
            dispatcher=self.dispatcher,
            dependencies=[Depends(require_auth)],
        )

    async def start(self, host: str = "0.0.0.0", port: int = 8080) -> None:
        """
        Start the web server.

        Args:
            host: Host address to bind to
            port: Port to listen on
        """
        self._host = host
        self._port = port

        # Configure uvicorn
        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)

        # Start server in background
        self._serve_task = asyncio.create_task(self._server.serve())

        logger.info("Web server started on http://%s:%d", host, port)

    async def stop(self) -> None:
        """Stop the web server and wait for uvicorn to exit."""
        if self._server is not None:
            self._server.should_exit = True
            self._server = None

        if self._serve_task is not None:
            try:
                await self._serve_task
            except asyncio.CancelledError:
                pass
            self._serve_task = None

        logger.info("Web server stopped")

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host
