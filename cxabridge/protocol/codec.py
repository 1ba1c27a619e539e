"""
CXA serial frame codec.

Protocol Format:
    Frames are ASCII text terminated by a single carriage return. There is
    no length prefix and no line feed.

    #GG,NN[,DATA]\\r

    GG     Two-digit command/reply group
    NN     Two-digit command/reply number
    DATA   Optional field, any characters except CR

A single read from the port may contain zero, one or several complete
frames. Each read is decoded on its own; a frame split across two reads
is lost.
"""

import logging
import re
from dataclasses import dataclass

from cxabridge.errors import MalformedFrameError
from cxabridge.protocol.commands import Command

logger = logging.getLogger(__name__)

FRAME_START = "#"
FRAME_END = "\r"
FIELD_SEPARATOR = ","

REPLY_PATTERN = re.compile(r"#(\d\d),(\d\d)(?:,([^\r]*))?\r")


@dataclass(frozen=True, slots=True)
class Reply:
    """A frame received from the amplifier."""

    group: str
    number: str
    data: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.group, self.number)


def encode_command(command: Command) -> bytes:
    """
    Encode a command into its wire frame.

    Args:
        command: The command to encode.

    Returns:
        ASCII bytes, e.g. b"#01,02,1\\r".
    """
    frame = f"{FRAME_START}{command.group}{FIELD_SEPARATOR}{command.number}"
    if command.data:
        frame += f"{FIELD_SEPARATOR}{command.data}"
    frame += FRAME_END
    return frame.encode("ascii")


def decode_replies(buffer: bytes | str) -> list[Reply]:
    """
    Decode every reply frame found in a buffer.

    Frames are returned in buffer order. Bytes between frames are ignored.

    Args:
        buffer: Raw bytes (or text) from a single port read.

    Returns:
        The decoded replies. Empty for an empty buffer.

    Raises:
        MalformedFrameError: If the buffer is non-empty but holds no frame.
    """
    if not buffer:
        return []

    if isinstance(buffer, bytes):
        text = buffer.decode("ascii", errors="replace")
    else:
        text = buffer

    replies = [
        Reply(group=m.group(1), number=m.group(2), data=m.group(3) or "")
        for m in REPLY_PATTERN.finditer(text)
    ]
    if not replies:
        raise MalformedFrameError(buffer)

    return replies
