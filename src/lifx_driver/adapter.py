"""Device adapter: the minimal actuation capability a Light needs from a bulb."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Protocol, TypeVar

from lifx.exceptions import LifxError, LifxTimeoutError

from lifx_driver.const import LIFX_ACTUATION_TIMEOUT
from lifx_driver.instrumentation import timed_async
from lifx_driver.logging_abstraction import get_logger
from lifx_driver.transport.client import device_serial
from lifx_driver.transport.exceptions import ActuationError, DeviceTimeoutError

if TYPE_CHECKING:
    from lifx.devices.base import Device

logger = get_logger(__name__)

T = TypeVar("T")


class DeviceAdapter(Protocol):
    """Power control for one bulb.

    Brightness and color are not pushed to the device yet; a Light only keeps
    them in its state model and reports them.
    """

    async def turn_on(self) -> None: ...

    async def turn_off(self) -> None: ...

    async def get_power(self) -> bool: ...


class LanDeviceAdapter:
    """DeviceAdapter over a lifx-async ``Device``.

    Every call is bounded by ``timeout`` seconds. Library, socket and timeout
    errors all surface as ``ActuationError``.
    """

    lp: str = "LanDeviceAdapter:"

    def __init__(self, device: Device, timeout: float = LIFX_ACTUATION_TIMEOUT) -> None:
        self.device = device
        self.timeout = timeout

    @property
    def device_id(self) -> str:
        return device_serial(self.device)

    async def _bounded(self, coro: Awaitable[T], op: str) -> T:
        lp = f"{self.lp}{op}:"
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except (TimeoutError, LifxTimeoutError):
            logger.warning("%s [%s] no response after %ss", lp, self.device_id, self.timeout)
            raise DeviceTimeoutError(self.device_id, self.timeout) from None
        except (LifxError, OSError) as e:
            logger.warning("%s [%s] %s: %s", lp, self.device_id, type(e).__name__, e)
            raise ActuationError(str(e), device_id=self.device_id) from e

    @timed_async("lan_turn_on")
    async def turn_on(self) -> None:
        await self._bounded(self.device.set_power(True), "turn_on")

    @timed_async("lan_turn_off")
    async def turn_off(self) -> None:
        await self._bounded(self.device.set_power(False), "turn_off")

    @timed_async("lan_get_power")
    async def get_power(self) -> bool:
        # Some library versions report the raw level (0 or 65535)
        return bool(await self._bounded(self.device.get_power(), "get_power"))

    async def get_label(self) -> str:
        return str(await self._bounded(self.device.get_label(), "get_label"))
