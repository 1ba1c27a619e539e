"""
Shared fixtures for the bridge tests.

FakeTransport stands in for the serial port: reads are served from a queue
fed by the test, writes are recorded.
"""

from __future__ import annotations

import asyncio

import pytest

from cxabridge.amplifier.dispatcher import CommandDispatcher
from cxabridge.amplifier.state import DeviceStateStore
from cxabridge.errors import TransportError


class FakeTransport:
    """In-memory duplex with the SerialTransport interface."""

    def __init__(self) -> None:
        self.written: list[bytes] = []
        self.fail_writes = False
        self.is_open = False
        self.open_count = 0
        self.reopen_count = 0
        self._reads: asyncio.Queue[bytes | Exception] = asyncio.Queue()

    def feed(self, item: bytes | Exception) -> None:
        """Queue data (or an error) for the next read."""
        self._reads.put_nowait(item)

    async def open(self) -> None:
        self.open_count += 1
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def reopen(self) -> None:
        self.reopen_count += 1
        self.is_open = True

    async def read(self, size: int = 1024) -> bytes:
        item = await self._reads.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise TransportError("write to fake port failed")
        self.written.append(data)


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until predicate() is true."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def transport() -> FakeTransport:
    """Create an open fake transport."""
    fake = FakeTransport()
    fake.is_open = True
    return fake


@pytest.fixture
def store() -> DeviceStateStore:
    """Create an empty state store."""
    return DeviceStateStore()


@pytest.fixture
def dispatcher(store: DeviceStateStore, transport: FakeTransport) -> CommandDispatcher:
    """Create a dispatcher with power gating enabled."""
    return CommandDispatcher(store, transport, gate_on_power=True)


@pytest.fixture
def settle():
    """Expose wait_until to tests."""
    return wait_until
