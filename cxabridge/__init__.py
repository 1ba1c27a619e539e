"""
CXA Bridge - HTTP control for Cambridge Audio CXA amplifiers.

The bridge talks to the amplifier over its RS-232 control port and exposes
power, mute and source as a small JSON API.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from cxabridge.server import BridgeServer

__all__ = ["BridgeServer", "__version__"]
