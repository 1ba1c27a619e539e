"""
Amplifier-side components: serial transport, state store, command
dispatch and the reply ingestion loop.
"""

from cxabridge.amplifier.dispatcher import CommandDispatcher
from cxabridge.amplifier.listener import FramePolicy, ReplyListener
from cxabridge.amplifier.state import DeviceState, DeviceStateStore
from cxabridge.amplifier.transport import SerialTransport

__all__ = [
    "CommandDispatcher",
    "DeviceState",
    "DeviceStateStore",
    "FramePolicy",
    "ReplyListener",
    "SerialTransport",
]
