"""A single LIFX bulb as seen by the bus.

Owns the bulb's state model, batch session and per-light command lock. All
commands for one light go through ``Light.dispatch`` and are applied one at a
time, in arrival order.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING, Any

from lifx_driver.channels import CHANNEL_TYPES, ON_OFF, Channel
from lifx_driver.emitter import NotificationEmitter
from lifx_driver.exceptions import ProtocolError
from lifx_driver.logging_abstraction import get_logger
from lifx_driver.requests import BatchSetRequest, ColorRequest, HueColorRequest
from lifx_driver.state import ColorMode, LightState
from lifx_driver.transport.exceptions import ActuationError

if TYPE_CHECKING:
    from lifx_driver.adapter import DeviceAdapter
    from lifx_driver.bus.client import DeviceBus

logger = get_logger(__name__)


class Light:
    """One bulb: state model, batch coordinator and channel dispatch."""

    lp: str = "Light:"

    def __init__(
        self,
        device_id: str,
        name: str,
        adapter: DeviceAdapter,
        emitter: NotificationEmitter | None = None,
    ) -> None:
        self.id = device_id
        self.name = name
        self.adapter = adapter
        self.emitter = emitter or NotificationEmitter(device_id)
        self.state = LightState()
        self.batching: bool = False
        self._lock = asyncio.Lock()
        self.channels: dict[str, Channel] = {cls.name: cls(self) for cls in CHANNEL_TYPES}

    def __repr__(self) -> str:
        return f"<Light: {self.id} '{self.name}'>"

    async def announce(self, device_bus: DeviceBus) -> None:
        """Announce every channel on the bus and bind its publish handle."""
        lp = f"{self.lp}announce:"
        for channel in self.channels.values():
            channel_bus = await device_bus.announce_channel(
                channel.name,
                channel.capability,
                list(channel.methods),
                list(channel.events),
                partial(self.dispatch, channel.name),
            )
            self.emitter.bind(channel.name, channel_bus)
        logger.info("%s [%s] announced channels: %s", lp, self.id, list(self.channels))

    async def dispatch(self, channel: str, method: str, params: Any) -> None:
        """Apply one inbound command.

        Command errors are logged and the command is dropped; they never
        propagate to the bus router.
        """
        lp = f"{self.lp}dispatch:"
        async with self._lock:
            target = self.channels.get(channel)
            if target is None:
                logger.error("%s [%s] no such channel '%s'", lp, self.id, channel)
                return
            try:
                await target.handle(method, params)
            except ProtocolError as e:
                logger.error(
                    "%s [%s] dropped %s.%s: %s",
                    lp,
                    self.id,
                    channel,
                    method,
                    e,
                    extra={"device_id": self.id, "channel": channel, "method": method, "error": type(e).__name__},
                )

    # -- state operations --

    def set_brightness(self, value: float) -> None:
        # Not pushed to the bulb; reported through the state snapshot only
        self.state.apply_brightness(value)

    def set_color(self, request: ColorRequest) -> None:
        match request:
            case HueColorRequest():
                self.state.apply_color(ColorMode.HUE, {"hue": request.hue, "saturation": request.saturation})
                self.state.apply_on_off(True)
            case _:
                self.state.apply_color(request.mode, request.model_dump(exclude={"mode", "transition"}))
        if request.transition is not None:
            self.set_transition(request.transition)

    def set_transition(self, milliseconds: int) -> None:
        self.state.apply_transition(milliseconds)

    def snapshot(self) -> dict[str, object]:
        return self.state.serialize()

    async def emit(self, channel: str) -> None:
        await self.emitter.emit(channel, self.snapshot())

    # -- device I/O --

    async def set_power(self, on: bool) -> None:
        """Record the power state and push it to the bulb.

        A failed push is logged; the recorded state is kept.
        """
        self.state.apply_on_off(on)
        await self._actuate_power(on)

    async def _actuate_power(self, on: bool) -> None:
        lp = f"{self.lp}actuate:"
        try:
            if on:
                await self.adapter.turn_on()
            else:
                await self.adapter.turn_off()
        except ActuationError as e:
            logger.error(
                "%s [%s] power %s not confirmed: %s",
                lp,
                self.id,
                "on" if on else "off",
                e,
                extra={"device_id": self.id, "reason": e.reason},
            )

    async def refresh_state(self) -> None:
        """Pull the power state from the bulb. Skipped while batching."""
        lp = f"{self.lp}refresh_state:"
        if self.batching:
            return
        try:
            on = await self.adapter.get_power()
        except ActuationError as e:
            logger.warning("%s [%s] keeping local state, refresh failed: %s", lp, self.id, e)
            return
        if on != self.state.on:
            logger.debug("%s [%s] device reports power=%s", lp, self.id, on)
        self.state.apply_on_off(on)

    # -- batch coordinator --

    def start_batch(self) -> None:
        self.batching = True

    async def end_batch(self) -> None:
        """Close the batch and emit a single event on on-off."""
        self.batching = False
        await self.emit(ON_OFF)

    async def set_batch(self, request: BatchSetRequest) -> None:
        """Apply color, brightness, power and transition as one change.

        ``request`` is already validated, so nothing here can reject it half way.
        """
        lp = f"{self.lp}set_batch:"
        logger.info(
            "%s [%s] applying batch",
            lp,
            self.id,
            extra={"fields": sorted(request.model_dump(exclude_none=True, by_alias=True))},
        )
        self.start_batch()
        try:
            if request.color is not None:
                self.set_color(
                    HueColorRequest(
                        mode="hue",
                        hue=request.color.hue,
                        saturation=request.color.saturation,
                        transition=request.color.transition,
                    ),
                )
            if request.brightness is not None:
                self.set_brightness(request.brightness)
            if request.on_off is not None:
                # Goes straight to the bulb, bypassing the batching guard
                await self.set_power(request.on_off)
            if request.transition is not None:
                self.set_transition(request.transition)
        finally:
            await self.end_batch()
