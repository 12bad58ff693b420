"""Startup self-test: flash every bulb so an operator can see discovery worked."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from lifx_driver.adapter import DeviceAdapter
from lifx_driver.logging_abstraction import get_logger
from lifx_driver.transport.exceptions import ActuationError

logger = get_logger(__name__)


async def _set_all(adapters: Sequence[DeviceAdapter], on: bool) -> None:
    results = await asyncio.gather(
        *(adapter.turn_on() if on else adapter.turn_off() for adapter in adapters),
        return_exceptions=True,
    )
    for adapter, result in zip(adapters, results, strict=True):
        if isinstance(result, ActuationError):
            logger.warning("blink: %s did not respond: %s", getattr(adapter, "device_id", adapter), result)
        elif isinstance(result, BaseException):
            raise result


async def blink_all_lights(adapters: Sequence[DeviceAdapter], cycles: int = 3, interval: float = 1.0) -> None:
    """Turn every bulb off then on, ``cycles`` times, pausing ``interval`` seconds after each step."""
    if not adapters:
        return
    logger.info("blink: flashing %d bulb(s) %d time(s)", len(adapters), cycles)
    for _ in range(cycles):
        await _set_all(adapters, False)
        await asyncio.sleep(interval)
        await _set_all(adapters, True)
        await asyncio.sleep(interval)
