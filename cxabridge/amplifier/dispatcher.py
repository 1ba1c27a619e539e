"""
Command Dispatcher - user intents to amplifier commands.

Translates the strings accepted by the HTTP API ("on", "toggle", "USB", ...)
into protocol commands. Every change follows the same three steps:

1. Validate the value and compute the command and intended state
2. Write the command frame to the transport
3. Commit the intended state to the store

The commit only happens after a successful write. The amplifier's own
reply will later confirm (or correct) the optimistic state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from cxabridge.errors import InvalidArgumentError
from cxabridge.protocol import commands
from cxabridge.protocol.codec import encode_command
from cxabridge.protocol.commands import Command

if TYPE_CHECKING:
    from cxabridge.amplifier.state import DeviceStateStore
    from cxabridge.amplifier.transport import SerialTransport

logger = logging.getLogger(__name__)

MUTE_ON_VALUES = ("on", "muted")
MUTE_OFF_VALUES = ("off", "unmuted")


class CommandDispatcher:
    """
    Maps power/mute/source requests to single command frames.

    Power gating: when gate_on_power is set, mute and source requests are
    still validated but are silently dropped while the amplifier is in
    standby, since the amplifier ignores them.

    Requests are serialized: the read of the current state, the write and
    the commit run under one lock, so concurrent toggles alternate.
    """

    def __init__(
        self,
        store: DeviceStateStore,
        transport: SerialTransport,
        *,
        gate_on_power: bool = True,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            store: State store receiving optimistic updates.
            transport: Transport used to send command frames.
            gate_on_power: Skip mute/source changes while powered off.
        """
        self.store = store
        self.transport = transport
        self.gate_on_power = gate_on_power
        self._lock = asyncio.Lock()

    async def send(self, command: Command) -> None:
        """
        Encode and write a single command.

        Raises:
            TransportError: If the write fails.
        """
        frame = encode_command(command)
        logger.debug("Sending %r", frame)
        await self.transport.write(frame)

    async def query_state(self, include_versions: bool = True) -> None:
        """Send the query burst that refreshes power, mute and source."""
        queries = commands.STATE_QUERIES
        if include_versions:
            queries = queries + commands.VERSION_QUERIES
        for command in queries:
            await self.send(command)

    async def power(self, value: str) -> Command | None:
        """
        Change the power state.

        Args:
            value: "on", "off", "toggle", or "" for no change.

        Returns:
            The command sent, or None if nothing was sent.

        Raises:
            InvalidArgumentError: If value is not recognised.
            TransportError: If the write fails.
        """
        if value == "":
            return None

        if value not in ("on", "off", "toggle"):
            raise InvalidArgumentError(
                f"Unexpected power state {value}, expected: on/off/toggle"
            )

        async with self._lock:
            if value == "toggle":
                state = await self.store.snapshot()
                powered = not state.powered
            else:
                powered = value == "on"

            command = commands.SET_POWER_ON if powered else commands.SET_POWER_STANDBY
            await self.send(command)
            await self.store.set_power(powered)
        logger.info("Power set to %s", "on" if powered else "standby")
        return command

    async def mute(self, value: str) -> Command | None:
        """
        Change the mute state.

        Args:
            value: "on"/"muted", "off"/"unmuted", or "" for no change.

        Returns:
            The command sent, or None if nothing was sent.

        Raises:
            InvalidArgumentError: If value is not recognised.
            TransportError: If the write fails.
        """
        if value == "":
            return None

        if value in MUTE_ON_VALUES:
            muted = True
        elif value in MUTE_OFF_VALUES:
            muted = False
        else:
            raise InvalidArgumentError(
                f"Unexpected mute state {value}, expected: on/off/muted/unmuted"
            )

        command = commands.SET_MUTE_ON if muted else commands.SET_MUTE_OFF
        async with self._lock:
            if not await self._powered_for(f"mute {value}"):
                return None
            await self.send(command)
            await self.store.set_mute(muted)
        logger.info("Mute set to %s", "on" if muted else "off")
        return command

    async def source(self, value: str) -> Command | None:
        """
        Change the input source.

        Args:
            value: Source name (e.g. "A1", "Bluetooth"), or "" for no change.

        Returns:
            The command sent, or None if nothing was sent.

        Raises:
            InvalidArgumentError: If value is not a known source.
            TransportError: If the write fails.
        """
        if value == "":
            return None

        command = commands.set_source_command(value)
        if command is None:
            raise InvalidArgumentError(f"Unknown source: {value}")

        async with self._lock:
            if not await self._powered_for(f"source {value}"):
                return None
            await self.send(command)
            await self.store.set_source(value)
        logger.info("Source set to %s", value)
        return command

    async def _powered_for(self, action: str) -> bool:
        if not self.gate_on_power:
            return True
        state = await self.store.snapshot()
        if not state.powered:
            logger.info("Ignoring %s while amplifier is in standby", action)
            return False
        return True
