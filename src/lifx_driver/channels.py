"""Command channels exposed for each light.

A channel turns a (method, params) pair from the bus into Light operations.
While the light is batching, a channel only records the change in the state
model: no device I/O and no event.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from lifx_driver.exceptions import UnknownMethodError
from lifx_driver.logging_abstraction import get_logger
from lifx_driver.requests import parse_batch, parse_brightness, parse_color, parse_on_off

if TYPE_CHECKING:
    from lifx_driver.light import Light

logger = get_logger(__name__)

ON_OFF = "on-off"
BRIGHTNESS = "brightness"
COLOR = "color"
BATCH = "core.batching"


class Channel:
    """Base class: name, capability and supported methods for announcement."""

    name: ClassVar[str]
    capability: ClassVar[str]
    methods: ClassVar[tuple[str, ...]]
    events: ClassVar[tuple[str, ...]] = ("state",)

    def __init__(self, light: Light) -> None:
        self.light = light
        self.lp = f"{type(self).__name__}:{light.id}:"

    async def handle(self, method: str, params: Any) -> None:
        raise NotImplementedError

    def _unknown(self, method: str) -> UnknownMethodError:
        return UnknownMethodError(self.name, method)


class OnOffChannel(Channel):
    name = ON_OFF
    capability = ON_OFF
    methods = ("turnOn", "turnOff", "set")

    async def handle(self, method: str, params: Any) -> None:
        lp = f"{self.lp}{method}:"
        match method:
            case "turnOn":
                on = True
            case "turnOff":
                on = False
            case "set":
                on = parse_on_off(params, method)
            case _:
                raise self._unknown(method)

        if self.light.batching:
            logger.debug("%s batch open, recording power=%s", lp, on)
            self.light.state.apply_on_off(on)
            return

        if method == "turnOff":
            await self.light.refresh_state()
        logger.info("%s power -> %s", lp, "on" if on else "off")
        await self.light.set_power(on)
        await self.light.emit(self.name)


class BrightnessChannel(Channel):
    name = BRIGHTNESS
    capability = BRIGHTNESS
    methods = ("set",)

    async def handle(self, method: str, params: Any) -> None:
        if method != "set":
            raise self._unknown(method)
        value = parse_brightness(params, method)
        self.light.set_brightness(value)
        if self.light.batching:
            return
        logger.info("%sset: brightness -> %.3f", self.lp, value)
        await self.light.emit(self.name)


class ColorChannel(Channel):
    name = COLOR
    capability = COLOR
    methods = ("set",)

    async def handle(self, method: str, params: Any) -> None:
        if method != "set":
            raise self._unknown(method)
        request = parse_color(params, method)
        if self.light.batching:
            self.light.set_color(request)
            return
        await self.light.refresh_state()
        self.light.set_color(request)
        logger.info("%sset: color mode -> %s", self.lp, request.mode)
        await self.light.emit(self.name)


class BatchChannel(Channel):
    name = BATCH
    capability = BATCH
    methods = ("setBatch",)

    async def handle(self, method: str, params: Any) -> None:
        if method != "setBatch":
            raise self._unknown(method)
        request = parse_batch(params, method)
        await self.light.set_batch(request)


CHANNEL_TYPES: tuple[type[Channel], ...] = (OnOffChannel, BrightnessChannel, ColorChannel, BatchChannel)
