"""Exception hierarchy for the LIFX driver.

Command errors (ProtocolError and subclasses) are raised while validating a
channel command. They are caught and logged by ``Light.dispatch``; the command
is dropped and the light state is left untouched.

Device I/O errors, including those raised by lifx-async, surface as the types
in ``lifx_driver.transport.exceptions``.
"""

from __future__ import annotations


class LifxDriverError(Exception):
    """Base exception for every error raised by the driver."""


class ProtocolError(LifxDriverError):
    """A channel command could not be understood.

    Attributes:
        channel: Channel the command arrived on
        method: Method name from the command

    """

    def __init__(self, message: str, channel: str = "", method: str = "") -> None:
        self.channel: str = channel
        self.method: str = method
        super().__init__(message)


class UnknownMethodError(ProtocolError):
    """Method name is not supported by the channel.

    Raised when:
    - ``turnOn`` is sent to the brightness channel
    - A typo such as ``sett`` arrives on any channel

    """

    def __init__(self, channel: str, method: str) -> None:
        super().__init__(f"Unknown method '{method}' on channel '{channel}'", channel=channel, method=method)


class InvalidPayloadError(ProtocolError):
    """Command parameters are missing, of the wrong type, or out of range.

    Attributes:
        reason: Human readable validation failure

    """

    def __init__(self, reason: str, channel: str = "", method: str = "") -> None:
        self.reason: str = reason
        super().__init__(f"Invalid payload: {reason}", channel=channel, method=method)


class InvalidColorModeError(ProtocolError):
    """Color command names a mode other than hue, xy or temperature.

    Attributes:
        mode: The offending mode value (None when absent)

    """

    def __init__(self, mode: object, channel: str = "color", method: str = "set") -> None:
        self.mode: object = mode
        super().__init__(f"Unsupported color mode: {mode!r}", channel=channel, method=method)


class BootstrapError(LifxDriverError):
    """Startup could not complete (bus connection or announcement failed).

    Attributes:
        stage: Startup stage that failed (e.g. "connect", "announce")

    """

    def __init__(self, stage: str, detail: str = "") -> None:
        self.stage: str = stage
        self.detail: str = detail
        message = f"Bootstrap failed at {stage}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
