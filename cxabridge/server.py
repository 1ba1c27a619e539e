"""
CXA Bridge - Main Server Module

This module contains the BridgeServer class that wires the serial side and
the HTTP side together and manages the application lifecycle.
"""

import asyncio
import logging
import signal

from cxabridge.amplifier.dispatcher import CommandDispatcher
from cxabridge.amplifier.listener import ReplyListener
from cxabridge.amplifier.state import DeviceStateStore
from cxabridge.amplifier.transport import SerialTransport
from cxabridge.config import BridgeConfig
from cxabridge.web.server import WebServer

logger = logging.getLogger(__name__)


class BridgeServer:
    """
    Serial-to-HTTP bridge for one CXA amplifier.

    The server manages:
    - Serial transport to the amplifier
    - Device state store shared by the listener and the HTTP handlers
    - Reply listener (ingestion loop) as a background task
    - Web server for the status/control API

    Startup fails if the serial port cannot be opened. After that, serial
    errors are handled by the listener's reconnect loop and never stop the
    bridge. Under the "fatal" frame policy an unreadable reply ends the
    listener, which shuts the bridge down.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        transport: SerialTransport | None = None,
    ) -> None:
        """
        Initialize the bridge.

        Args:
            config: Bridge configuration (defaults if not provided).
            transport: Optional pre-built transport, used instead of opening
                config.serial.port.
        """
        self.config = config if config is not None else BridgeConfig()

        if transport is None:
            transport = SerialTransport(
                self.config.serial.port,
                baudrate=self.config.serial.baudrate,
            )
        self.transport = transport
        self.store = DeviceStateStore()
        self.dispatcher = CommandDispatcher(
            self.store,
            self.transport,
            gate_on_power=self.config.policy.gate_on_power,
        )
        self.listener = ReplyListener(
            self.transport,
            self.store,
            frame_policy=self.config.policy.frame_policy,
            retry_initial=self.config.policy.retry_initial,
            retry_max=self.config.policy.retry_max,
            on_reconnect=self.refresh_state,
        )
        self.web_server: WebServer | None = None

        # Server state
        self._running = False
        self._shutdown_event: asyncio.Event | None = None
        self.exit_code = 0

    async def refresh_state(self) -> None:
        """Query power, mute and source (and optionally versions)."""
        await self.dispatcher.query_state(include_versions=self.config.policy.query_versions)

    async def start(self) -> None:
        """
        Start all bridge components.

        Raises:
            TransportError: If the serial port cannot be opened or the
                initial query cannot be written.
        """
        logger.info("Starting CXA bridge on %s", self.config.serial.port)

        self._running = True
        self._shutdown_event = asyncio.Event()
        self.exit_code = 0

        await self.transport.open()

        # Listen before querying so no reply is missed
        task = self.listener.start()
        task.add_done_callback(self._on_listener_done)

        await self.refresh_state()

        self.web_server = WebServer(
            store=self.store,
            dispatcher=self.dispatcher,
            transport=self.transport,
            auth=self.config.auth,
        )
        await self.web_server.start(host=self.config.http.host, port=self.config.http.port)

        logger.info("CXA bridge started successfully")

    async def stop(self) -> None:
        """Stop all bridge components gracefully."""
        if not self._running:
            return

        logger.info("Stopping CXA bridge...")
        self._running = False

        # Stop Web server first
        if self.web_server:
            await self.web_server.stop()
            self.web_server = None

        await self.listener.stop()
        await self.transport.close()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("CXA bridge stopped")

    async def run(self) -> int:
        """
        Run the bridge until shutdown is requested.

        This method starts all components and waits for a shutdown signal
        (SIGINT or SIGTERM) or for the listener to end.

        Returns:
            Process exit code.
        """
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise

        # Set up signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            self.request_shutdown()

        installed: list[signal.Signals] = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Signal handlers not supported on Windows or off the main thread
                pass

        try:
            # Wait for shutdown
            if self._shutdown_event:
                await self._shutdown_event.wait()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

        await self.stop()
        return self.exit_code

    def request_shutdown(self) -> None:
        """Ask run() to stop the bridge."""
        if self._shutdown_event:
            self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Check if the bridge is currently running."""
        return self._running

    def _on_listener_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or not self._running:
            return
        error = task.exception()
        if error is not None:
            logger.error("Reply listener terminated: %s", error)
        self.exit_code = 1
        self.request_shutdown()
