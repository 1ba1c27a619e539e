"""
Serial transport for the CXA amplifier.

Wraps a pyserial-asyncio stream pair. The amplifier link runs at 9600 baud,
8 data bits, no parity, 1 stop bit. Reads return whatever chunk the port
delivers; writes are serialized by a lock of their own so concurrent HTTP
requests never interleave partial frames.
"""

import asyncio
import logging

import serial
import serial_asyncio

from cxabridge.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
READ_CHUNK_SIZE = 1024


class SerialTransport:
    """
    Byte-stream duplex to the amplifier.

    Attributes:
        port: Serial device path or pyserial URL.
        baudrate: Line speed (default 9600).
    """

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUDRATE) -> None:
        self.port = port
        self.baudrate = baudrate

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._write_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    async def open(self) -> None:
        """
        Open the serial port.

        Raises:
            TransportError: If the port cannot be opened.
        """
        if self.is_open:
            return

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except (OSError, serial.SerialException) as e:
            raise TransportError(f"cannot open {self.port}: {e}") from e

        logger.info("Opened serial port %s at %d baud", self.port, self.baudrate)

    async def close(self) -> None:
        """Close the port. Safe to call when already closed."""
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, serial.SerialException) as e:
            logger.warning("Error closing serial port %s: %s", self.port, e)

        logger.info("Closed serial port %s", self.port)

    async def reopen(self) -> None:
        """Close and open the port again."""
        await self.close()
        await self.open()

    async def read(self, size: int = READ_CHUNK_SIZE) -> bytes:
        """
        Read one chunk from the port.

        Blocks until at least one byte is available.

        Raises:
            TransportError: On EOF, read failure, or if the port is closed.
        """
        if self._reader is None:
            raise TransportError("serial port is not open")

        try:
            data = await self._reader.read(size)
        except (OSError, serial.SerialException) as e:
            raise TransportError(f"read from {self.port} failed: {e}") from e

        if not data:
            raise TransportError(f"serial port {self.port} closed")
        return data

    async def write(self, data: bytes) -> None:
        """
        Write a frame to the port.

        Raises:
            TransportError: On write failure, or if the port is closed.
        """
        async with self._write_lock:
            if self._writer is None:
                raise TransportError("serial port is not open")
            try:
                self._writer.write(data)
                await self._writer.drain()
            except (OSError, serial.SerialException) as e:
                raise TransportError(f"write to {self.port} failed: {e}") from e
