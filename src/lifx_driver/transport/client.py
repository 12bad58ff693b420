"""Bulb discovery on the LAN.

The wire protocol (framing, sequence matching, acknowledgements) is handled
by lifx-async. This client runs discovery and keeps the library ``Device``
object for every bulb it found so they can be closed on shutdown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lifx import discover
from lifx.exceptions import LifxError

from lifx_driver.const import LIFX_BROADCAST_ADDRESS
from lifx_driver.logging_abstraction import get_logger
from lifx_driver.transport.exceptions import ActuationError

if TYPE_CHECKING:
    from lifx.devices.base import Device

logger = get_logger(__name__)


def device_serial(device: Device) -> str:
    """Serial as used for device ids on the bus: 12 lower-case hex digits."""
    return str(device.serial).lower()


class LifxLanClient:
    lp: str = "LifxLanClient:"

    def __init__(self, broadcast_address: str = LIFX_BROADCAST_ADDRESS) -> None:
        self.broadcast_address = broadcast_address
        self.devices: dict[str, Device] = {}

    async def discover(self, timeout: float) -> list[Device]:
        """Broadcast for ``timeout`` seconds; one Device per serial.

        Raises:
            ActuationError: discovery could not run (socket or library failure)

        """
        lp = f"{self.lp}discover:"
        found: dict[str, Device] = {}
        try:
            async for device in discover(timeout=timeout, broadcast_address=self.broadcast_address):
                serial = device_serial(device)
                if serial in found:
                    continue
                found[serial] = device
                logger.info("%s found bulb %s at %s", lp, serial, device.ip)
        except (LifxError, OSError) as e:
            raise ActuationError(f"discovery failed: {e}") from e

        self.devices.update(found)
        logger.info("%s %d bulb(s) found", lp, len(found))
        return list(found.values())

    async def close(self) -> None:
        lp = f"{self.lp}close:"
        for serial, device in self.devices.items():
            try:
                await device.__aexit__(None, None, None)
            except (LifxError, OSError) as e:
                logger.warning("%s [%s] close failed: %s", lp, serial, e)
        self.devices.clear()
