"""Canonical light state model.

Inbound values are normalised floats (0.0-1.0) or physical units (Kelvin,
milliseconds); the model stores the 16-bit integers and whole seconds the bulb
works in. Exactly one color representation is held at a time.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from lifx_driver.exceptions import InvalidColorModeError, InvalidPayloadError

U16_MAX = 65535
MIREDS_PER_KELVIN = 1_000_000


class ColorMode(StrEnum):
    HUE = "hue"
    XY = "xy"
    TEMPERATURE = "temperature"


def to_u16(value: float) -> int:
    """Scale a 0.0-1.0 float to 0-65535, rounding half to even."""
    return round(value * U16_MAX)


@dataclass
class LightState:
    """Current view of one bulb.

    ``None`` means "unset, do not report". Of ``hue``/``saturation``,
    ``color_temperature`` and ``xy`` only one group is populated at a time.
    """

    on: bool | None = False
    brightness: int | None = 0
    hue: int | None = 0
    saturation: int | None = 0
    color_temperature: int | None = None
    xy: tuple[float, float] | None = None
    transition_time: int | None = 0

    def apply_on_off(self, on: bool) -> None:
        self.on = on

    def apply_brightness(self, value: float) -> None:
        self.brightness = to_u16(value)

    def apply_color(self, mode: ColorMode | str, attributes: Mapping[str, float]) -> None:
        """Switch to ``mode`` and store its attributes, clearing the other modes.

        Raises:
            InvalidColorModeError: ``mode`` is not hue, xy or temperature
            InvalidPayloadError: a required attribute is missing, or the
                temperature does not map to a 16-bit mired value

        """
        try:
            color_mode = ColorMode(mode)
        except ValueError:
            raise InvalidColorModeError(mode) from None

        try:
            match color_mode:
                case ColorMode.HUE:
                    self.hue = to_u16(attributes["hue"])
                    self.saturation = to_u16(attributes["saturation"])
                    self.xy = None
                    self.color_temperature = None
                case ColorMode.XY:
                    self.xy = (attributes["x"], attributes["y"])
                    self.hue = None
                    self.saturation = None
                    self.color_temperature = None
                case ColorMode.TEMPERATURE:
                    self.color_temperature = kelvin_to_mireds(attributes["temperature"])
                    self.xy = None
                    self.hue = None
                    self.saturation = None
        except KeyError as e:
            raise InvalidPayloadError(f"missing '{e.args[0]}' for {color_mode} mode", channel="color") from None

    def apply_transition(self, milliseconds: int) -> None:
        # Sub-second transitions truncate to 0
        self.transition_time = milliseconds // 1000

    def serialize(self) -> dict[str, object]:
        """Return the wire snapshot published with every "state" event."""
        return {
            "on": self.on,
            "bri": self.brightness,
            "sat": self.saturation,
            "hue": self.hue,
            "ct": self.color_temperature,
            "transitionTime": self.transition_time,
            "xy": list(self.xy) if self.xy is not None else None,
        }


def kelvin_to_mireds(kelvin: float) -> int:
    """Convert a color temperature to mireds.

    Raises:
        InvalidPayloadError: ``kelvin`` is not positive or the result exceeds 65535

    """
    if kelvin <= 0:
        raise InvalidPayloadError(f"temperature must be positive, got {kelvin}", channel="color")
    mireds = math.floor(MIREDS_PER_KELVIN / kelvin)
    if mireds > U16_MAX:
        raise InvalidPayloadError(f"temperature {kelvin}K is out of range", channel="color")
    return mireds
