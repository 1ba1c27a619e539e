"""
Device State Store - cached view of the amplifier.

The store holds the last known power, mute and source state. It is updated
from two directions:
- Replies decoded by the ingestion loop (apply_reply)
- Optimistic commits by the command dispatcher after a successful write

Thread-safety: All access goes through a single asyncio lock. The lock is
only held around in-memory updates and copies, never across I/O.
"""

import asyncio
import logging
from dataclasses import dataclass, replace

from cxabridge.protocol.codec import Reply
from cxabridge.protocol.commands import resolve_source

logger = logging.getLogger(__name__)

ON = "1"

# Reply keys that carry state
POWER_STATE = ("02", "01")
MUTE_STATE = ("02", "03")
SOURCE_STATE = ("04", "01")


@dataclass(frozen=True, slots=True)
class DeviceState:
    """Immutable snapshot of the amplifier state."""

    powered: bool = False
    muted: bool = False
    source: str = ""

    def to_dict(self) -> dict[str, bool | str]:
        """Convert to the JSON shape served by the status endpoint."""
        return {
            "power": self.powered,
            "mute": self.muted,
            "source": self.source,
        }


def _with_power(state: DeviceState, powered: bool) -> DeviceState:
    """Return state with the power field set, clearing mute and source on standby."""
    if powered:
        return replace(state, powered=True)
    return DeviceState(powered=False, muted=False, source="")


class DeviceStateStore:
    """
    Holder of the single shared DeviceState.

    Snapshots are immutable copies; callers never see a live reference.
    """

    def __init__(self, initial: DeviceState | None = None) -> None:
        self._state = initial if initial is not None else DeviceState()
        self._lock = asyncio.Lock()

    async def snapshot(self) -> DeviceState:
        """Return a copy of the current state."""
        async with self._lock:
            return self._state

    async def apply_reply(self, reply: Reply) -> bool:
        """
        Apply an amplifier reply to the cached state.

        Replies other than power, mute and source are informational and leave
        the state untouched.

        Args:
            reply: The decoded reply.

        Returns:
            True if the state changed.
        """
        async with self._lock:
            old = self._state
            if reply.key == POWER_STATE:
                new = _with_power(old, reply.data == ON)
            elif reply.key == MUTE_STATE:
                new = replace(old, muted=reply.data == ON)
            elif reply.key == SOURCE_STATE:
                new = replace(old, source=resolve_source(reply.data))
            else:
                return False
            self._state = new

        if new != old:
            logger.debug("State updated from reply %s,%s: %s", reply.group, reply.number, new)
            return True
        return False

    async def set_power(self, powered: bool) -> None:
        """Optimistically set power; standby also clears mute and source."""
        async with self._lock:
            self._state = _with_power(self._state, powered)

    async def set_mute(self, muted: bool) -> None:
        """Optimistically set mute; ignored while in standby."""
        async with self._lock:
            if not self._state.powered:
                return
            self._state = replace(self._state, muted=muted)

    async def set_source(self, source: str) -> None:
        """Optimistically set the source name; ignored while in standby."""
        async with self._lock:
            if not self._state.powered:
                return
            self._state = replace(self._state, source=source)
