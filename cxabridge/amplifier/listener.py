"""
Reply listener - the ingestion loop.

A single background task reads the serial port, decodes each chunk into
replies and applies them to the state store in decode order. The amplifier
sends replies both for our queries and unsolicited (front panel, remote),
so there is no request/response correlation.

Error policy:
- Malformed reads are logged and dropped (FramePolicy.LOG), or end the loop
  (FramePolicy.FATAL).
- Transport errors are logged; the port is reopened after an exponential
  backoff and the state is queried again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from enum import Enum
from typing import TYPE_CHECKING, Any

from cxabridge.errors import MalformedFrameError, TransportError
from cxabridge.protocol.codec import Reply, decode_replies
from cxabridge.protocol.replies import describe_reply, is_error_reply, is_known_reply

if TYPE_CHECKING:
    from cxabridge.amplifier.state import DeviceStateStore
    from cxabridge.amplifier.transport import SerialTransport

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INITIAL_SECONDS = 1.0
DEFAULT_RETRY_MAX_SECONDS = 30.0

ReconnectHandler = Callable[[], Coroutine[Any, Any, None]]


class FramePolicy(Enum):
    """What to do when a read contains no valid frame."""

    LOG = "log"
    FATAL = "fatal"


class ReplyListener:
    """
    Background task feeding amplifier replies into the state store.

    Attributes:
        transport: The serial transport to read from.
        store: The state store replies are applied to.
        frame_policy: Handling of reads without a valid frame.
    """

    def __init__(
        self,
        transport: SerialTransport,
        store: DeviceStateStore,
        *,
        frame_policy: FramePolicy = FramePolicy.LOG,
        retry_initial: float = DEFAULT_RETRY_INITIAL_SECONDS,
        retry_max: float = DEFAULT_RETRY_MAX_SECONDS,
        on_reconnect: ReconnectHandler | None = None,
    ) -> None:
        """
        Initialize the listener.

        Args:
            transport: Transport to read from (must support read/reopen).
            store: Store to apply replies to.
            frame_policy: LOG to drop malformed reads, FATAL to stop.
            retry_initial: First backoff delay after a transport error.
            retry_max: Upper bound for the backoff delay.
            on_reconnect: Coroutine run after the port has been reopened.
        """
        self.transport = transport
        self.store = store
        self.frame_policy = frame_policy
        self.retry_initial = retry_initial
        self.retry_max = retry_max
        self.on_reconnect = on_reconnect

        self._task: asyncio.Task[None] | None = None
        self._delay = retry_initial

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def start(self) -> asyncio.Task[None]:
        """Start the ingestion task if it is not already running."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="cxabridge-listener")
            logger.debug("Reply listener started")
        return self._task

    async def stop(self) -> None:
        """Cancel the ingestion task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except MalformedFrameError:
            # Already reported when the loop ended
            pass
        except Exception as e:
            logger.warning("Reply listener ended with error: %s", e)
        logger.debug("Reply listener stopped")

    async def run(self) -> None:
        """
        Read and apply replies until cancelled.

        Raises:
            MalformedFrameError: Only under FramePolicy.FATAL.
        """
        while True:
            try:
                data = await self.transport.read()
            except TransportError as e:
                await self._recover(e)
                continue

            self._delay = self.retry_initial

            try:
                await self.process_chunk(data)
            except MalformedFrameError as e:
                if self.frame_policy is FramePolicy.FATAL:
                    logger.error("Stopping reply listener: %s", e)
                    raise
                logger.warning("Discarding read: %s", e)

    async def process_chunk(self, data: bytes) -> list[Reply]:
        """
        Decode one read and apply the replies in order.

        Raises:
            MalformedFrameError: If data holds no valid frame.
        """
        logger.debug("Response from amp %r", data)
        replies = decode_replies(data)

        for reply in replies:
            description = describe_reply(reply)
            if is_error_reply(reply):
                logger.warning("Amplifier reported: %s", description)
            elif not is_known_reply(reply):
                logger.info("Ignoring %s", description)
            else:
                logger.info("Received: %s", description)
            await self.store.apply_reply(reply)

        return replies

    async def _recover(self, error: TransportError) -> None:
        """Back off, reopen the port and refresh state."""
        logger.warning("Serial read failed: %s (retrying in %.1fs)", error, self._delay)
        await asyncio.sleep(self._delay)
        self._delay = min(self._delay * 2, self.retry_max)

        try:
            await self.transport.reopen()
        except TransportError as e:
            logger.error("Reconnect failed: %s", e)
            return

        if self.on_reconnect is not None:
            try:
                await self.on_reconnect()
            except TransportError as e:
                logger.error("State refresh after reconnect failed: %s", e)
