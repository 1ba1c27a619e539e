"""
Exception hierarchy for the CXA bridge.

Only command-dispatch and transport-write errors ever reach the HTTP layer.
Decode errors stay inside the ingestion loop.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class TransportError(BridgeError):
    """Reading from or writing to the serial port failed."""

    pass


class CodecError(BridgeError):
    """Invalid protocol data received."""

    pass


class MalformedFrameError(CodecError):
    """A non-empty buffer contained no valid reply frame."""

    def __init__(self, buffer: bytes | str) -> None:
        self.buffer = buffer
        super().__init__(f"invalid reply format: {buffer!r}")


class InvalidArgumentError(BridgeError):
    """A user-supplied power, mute or source value is not recognised."""

    pass
