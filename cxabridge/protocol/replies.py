"""
Reply interpretation for CXA amplifier frames.

Maps a decoded reply to a human readable description. Replies are looked up
by their (group, number) key in a static table; add new replies there.
"""

from collections.abc import Callable
from dataclasses import dataclass

from cxabridge.protocol.codec import Reply
from cxabridge.protocol.commands import resolve_source

ERROR_GROUP = "00"


@dataclass(frozen=True, slots=True)
class ReplyDescriptor:
    """Description of a known reply and how to present its data."""

    description: str
    resolve: Callable[[str], str] | None = None


REPLY_TABLE: dict[tuple[str, str], ReplyDescriptor] = {
    ("00", "01"): ReplyDescriptor("Command group unknown"),
    ("00", "02"): ReplyDescriptor("Command number unknown"),
    ("00", "03"): ReplyDescriptor("Command data error"),
    ("00", "04"): ReplyDescriptor("Command not available"),
    ("02", "01"): ReplyDescriptor("Current power state"),
    ("02", "03"): ReplyDescriptor("Current mute state"),
    ("04", "01"): ReplyDescriptor("Current source", resolve=resolve_source),
    # CXA61 answers version queries in group 13, CXA81 in group 14
    ("13", "01"): ReplyDescriptor("Protocol version"),
    ("13", "02"): ReplyDescriptor("Firmware version"),
    ("14", "01"): ReplyDescriptor("Protocol version"),
    ("14", "02"): ReplyDescriptor("Firmware version"),
}


def is_known_reply(reply: Reply) -> bool:
    """Check if the reply has an entry in the reply table."""
    return reply.key in REPLY_TABLE


def is_error_reply(reply: Reply) -> bool:
    """Check if the amplifier rejected a command."""
    return reply.group == ERROR_GROUP


def interpret_reply(reply: Reply) -> tuple[str, str]:
    """
    Look up the description and resolved data for a reply.

    Args:
        reply: The decoded reply.

    Returns:
        (description, resolved_data). For unknown replies the description
        embeds the raw group, number and data.
    """
    descriptor = REPLY_TABLE.get(reply.key)
    if descriptor is None:
        return f"Unknown reply: {reply.group},{reply.number},{reply.data}", reply.data

    data = reply.data
    if descriptor.resolve is not None:
        data = descriptor.resolve(data)
    return descriptor.description, data


def describe_reply(reply: Reply) -> str:
    """Format a reply for logging, e.g. "Current source: Bluetooth"."""
    description, data = interpret_reply(reply)
    if reply.data:
        return f"{description}: {data}"
    return description
