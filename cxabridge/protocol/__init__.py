"""
Protocol implementation for the CXA serial link.

This package contains:
- codec: Frame encoding and decoding
- commands: The static command table and source mapping
- replies: Reply descriptions for logging
"""

from cxabridge.protocol.codec import Reply, decode_replies, encode_command
from cxabridge.protocol.commands import SOURCES, Command
from cxabridge.protocol.replies import describe_reply, interpret_reply

__all__ = [
    "Command",
    "Reply",
    "SOURCES",
    "decode_replies",
    "describe_reply",
    "encode_command",
    "interpret_reply",
]
