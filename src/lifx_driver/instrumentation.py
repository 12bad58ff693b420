"""Timing for bulb I/O.

``timed_async`` wraps adapter methods so a slow or flaky bulb shows up in the
logs: every call is logged at debug, calls over the threshold at warning.
Settings start from LIFX_PERF_TRACKING / LIFX_PERF_THRESHOLD_MS and are
replaced by ``configure_timing`` once the full configuration is loaded.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, ParamSpec, TypeVar

from lifx_driver import const
from lifx_driver.logging_abstraction import DriverLogger, get_logger

__all__ = ["TimingSettings", "configure_timing", "timed_async"]

logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


@dataclass
class TimingSettings:
    enabled: bool = const.LIFX_PERF_TRACKING
    threshold_ms: int = const.LIFX_PERF_THRESHOLD_MS


settings = TimingSettings()


def configure_timing(enabled: bool, threshold_ms: int) -> None:
    settings.enabled = enabled
    settings.threshold_ms = threshold_ms


def timed_async(
    operation_name: str | None = None,
) -> Callable[[Callable[P, Coroutine[Any, Any, T]]], Callable[P, Coroutine[Any, Any, T]]]:
    """Time an async method of a device-bound object.

    When the first positional argument has a ``device_id`` it is added to the
    log context.

    Example:
        @timed_async("lan_turn_on")
        async def turn_on(self) -> None: ...
    """

    def decorator(func: Callable[P, Coroutine[Any, Any, T]]) -> Callable[P, Coroutine[Any, Any, T]]:
        name = operation_name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            if not settings.enabled:
                return await func(*args, **kwargs)
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                device_id = getattr(args[0], "device_id", None) if args else None
                _log_timing(logger, name, elapsed_ms, settings.threshold_ms, device_id)

        return wrapper

    return decorator


def _log_timing(
    log: DriverLogger,
    operation: str,
    elapsed_ms: float,
    threshold_ms: int,
    device_id: str | None = None,
) -> None:
    slow = elapsed_ms > threshold_ms
    context: dict[str, object] = {"operation": operation, "duration_ms": round(elapsed_ms, 2), "slow": slow}
    if device_id:
        context["device_id"] = device_id
    if slow:
        log.warning("⏱️ [%s] took %.1fms (threshold %dms)", operation, elapsed_ms, threshold_ms, extra=context)
    else:
        log.debug("⏱️ [%s] took %.1fms", operation, elapsed_ms, extra=context)
