"""
CXA serial commands (Bridge → Amplifier).

Every command the bridge can send is a fixed (group, number, data) triple.
The amplifier answers with replies in the 02/04/14 groups, see replies.py.

Reference: Cambridge Audio CXA61/CXA81 serial control protocol.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Command:
    """A serial command frame before encoding."""

    group: str
    number: str
    data: str = ""


# Amplifier commands
GET_POWER_STATE = Command("01", "01")
SET_POWER_STANDBY = Command("01", "02", "0")
SET_POWER_ON = Command("01", "02", "1")
GET_MUTE_STATE = Command("01", "03")
SET_MUTE_OFF = Command("01", "04", "0")
SET_MUTE_ON = Command("01", "04", "1")

# Source commands
GET_SOURCE = Command("03", "01")
GET_NEXT_SOURCE = Command("03", "02")
GET_PREVIOUS_SOURCE = Command("03", "03")
SET_SOURCE_GROUP = "03"
SET_SOURCE_NUMBER = "04"

# Version commands
GET_PROTOCOL_VERSION = Command("13", "01")
GET_FIRMWARE_VERSION = Command("13", "02")

# Source code -> display name
SOURCES: dict[str, str] = {
    "00": "A1",
    "01": "A2",
    "02": "A3",
    "03": "A4",
    "04": "D1",
    "05": "D2",
    "06": "D3",
    "10": "MP3",  # CXA81 only
    "14": "Bluetooth",
    "16": "USB",
    "20": "A1 Balanced",
}

# Display name -> source code
SOURCE_CODES: dict[str, str] = {name: code for code, name in SOURCES.items()}


def resolve_source(code: str) -> str:
    """Return the source name for a code, or "" if the code is unknown."""
    return SOURCES.get(code, "")


def set_source_command(name: str) -> Command | None:
    """
    Build the SetSource command for a source name.

    Args:
        name: Source display name, e.g. "Bluetooth".

    Returns:
        The command, or None if the name is not a known source.
    """
    code = SOURCE_CODES.get(name)
    if code is None:
        return None
    return Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, code)


SET_SOURCE_A1 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "00")
SET_SOURCE_A2 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "01")
SET_SOURCE_A3 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "02")
SET_SOURCE_A4 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "03")
SET_SOURCE_D1 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "04")
SET_SOURCE_D2 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "05")
SET_SOURCE_D3 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "06")
SET_SOURCE_MP3 = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "10")
SET_SOURCE_BLUETOOTH = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "14")
SET_SOURCE_USB_AUDIO = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "16")
SET_SOURCE_A1_BALANCED = Command(SET_SOURCE_GROUP, SET_SOURCE_NUMBER, "20")

# Initial query burst sent after the port is opened
STATE_QUERIES: tuple[Command, ...] = (GET_POWER_STATE, GET_MUTE_STATE, GET_SOURCE)
VERSION_QUERIES: tuple[Command, ...] = (GET_PROTOCOL_VERSION, GET_FIRMWARE_VERSION)
