"""Exception types for device actuation errors."""

from __future__ import annotations

from lifx_driver.exceptions import LifxDriverError


class ActuationError(LifxDriverError):
    """A command could not be delivered to the bulb.

    Raised when:
    - lifx-async reports an error or the socket fails
    - The bulb does not answer in time (see DeviceTimeoutError)

    The light state is never rolled back on this error.

    Attributes:
        reason: Specific failure reason
        device_id: Serial of the target bulb

    """

    def __init__(self, reason: str, device_id: str = "") -> None:
        self.reason: str = reason
        self.device_id: str = device_id
        super().__init__(f"Actuation failed for {device_id or 'device'}: {reason}")


class DeviceTimeoutError(ActuationError):
    """The bulb did not answer within the configured timeout.

    Attributes:
        timeout: Seconds waited before giving up

    """

    def __init__(self, device_id: str, timeout: float) -> None:
        self.timeout: float = timeout
        super().__init__(f"no response within {timeout}s", device_id=device_id)
