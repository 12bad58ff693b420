"""Typed command payloads, one per channel method.

Every inbound ``params`` value is validated here before any state is touched.
Validation is strict: ``"true"`` is not a bool and ``"0.5"`` is not a
brightness. Any failure is reported as an ``InvalidPayloadError`` (or
``InvalidColorModeError`` for an unknown color mode).
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, TypeAdapter, ValidationError, field_validator

from lifx_driver.exceptions import InvalidColorModeError, InvalidPayloadError
from lifx_driver.state import MIREDS_PER_KELVIN, U16_MAX, ColorMode

UnitFloat = Annotated[float, Field(ge=0.0, le=1.0, strict=True)]
# NaN and Infinity would be echoed back in events, which must stay valid JSON
FiniteFloat = Annotated[float, Field(strict=True, allow_inf_nan=False)]
# Milliseconds; anything that does not fit a 16-bit seconds field is rejected
TransitionMs = Annotated[int, Field(ge=0, le=U16_MAX * 1000 + 999, strict=True)]


class HueColorRequest(BaseModel):
    mode: Literal["hue"]
    hue: UnitFloat
    saturation: UnitFloat
    transition: TransitionMs | None = None


class XYColorRequest(BaseModel):
    mode: Literal["xy"]
    x: FiniteFloat
    y: FiniteFloat
    transition: TransitionMs | None = None


class TemperatureColorRequest(BaseModel):
    mode: Literal["temperature"]
    temperature: Annotated[float, Field(gt=0, strict=True, allow_inf_nan=False)]
    transition: TransitionMs | None = None

    @field_validator("temperature")
    @classmethod
    def _fits_mired_range(cls, value: float) -> float:
        if math.floor(MIREDS_PER_KELVIN / value) > U16_MAX:
            msg = f"{value}K is below the supported range"
            raise ValueError(msg)
        return value


ColorRequest = HueColorRequest | XYColorRequest | TemperatureColorRequest

_COLOR_MODELS: dict[ColorMode, type[ColorRequest]] = {
    ColorMode.HUE: HueColorRequest,
    ColorMode.XY: XYColorRequest,
    ColorMode.TEMPERATURE: TemperatureColorRequest,
}


class BatchColor(BaseModel):
    """Color part of a batch; always applied in hue mode."""

    hue: UnitFloat
    saturation: UnitFloat
    transition: TransitionMs | None = None


class BatchSetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    color: BatchColor | None = None
    brightness: UnitFloat | None = None
    on_off: StrictBool | None = Field(default=None, alias="on-off")
    transition: TransitionMs | None = None


_bool_adapter: TypeAdapter[bool] = TypeAdapter(StrictBool)
_unit_adapter: TypeAdapter[float] = TypeAdapter(UnitFloat)


def first_param(params: Any) -> Any:
    """Unwrap JSON-RPC positional params: ``[x]`` becomes ``x``, bare values pass through."""
    if isinstance(params, list):
        if not params:
            raise InvalidPayloadError("empty params list")
        return params[0]
    return params


def _describe(err: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'value'}: {e['msg']}" for e in err.errors(include_url=False)
    )


def parse_on_off(params: Any, method: str = "set") -> bool:
    try:
        return _bool_adapter.validate_python(first_param(params))
    except ValidationError as e:
        raise InvalidPayloadError(_describe(e), channel="on-off", method=method) from e


def parse_brightness(params: Any, method: str = "set") -> float:
    try:
        return _unit_adapter.validate_python(first_param(params))
    except ValidationError as e:
        raise InvalidPayloadError(_describe(e), channel="brightness", method=method) from e


def parse_color(params: Any, method: str = "set") -> ColorRequest:
    """Validate a color command.

    Raises:
        InvalidPayloadError: payload is not an object or its fields are invalid
        InvalidColorModeError: ``mode`` is missing or not a supported mode

    """
    payload = first_param(params)
    if not isinstance(payload, Mapping):
        raise InvalidPayloadError(f"expected an object, got {type(payload).__name__}", channel="color", method=method)

    mode = payload.get("mode")
    try:
        model = _COLOR_MODELS[ColorMode(mode)]
    except ValueError:
        raise InvalidColorModeError(mode, method=method) from None

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidPayloadError(_describe(e), channel="color", method=method) from e


def parse_batch(params: Any, method: str = "setBatch") -> BatchSetRequest:
    payload = first_param(params)
    if not isinstance(payload, Mapping):
        raise InvalidPayloadError(
            f"expected an object, got {type(payload).__name__}",
            channel="core.batching",
            method=method,
        )
    try:
        return BatchSetRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidPayloadError(_describe(e), channel="core.batching", method=method) from e
