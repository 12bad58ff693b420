from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

import dotenv
import uvloop

from lifx_driver.adapter import LanDeviceAdapter
from lifx_driver.blink import blink_all_lights
from lifx_driver.bus.client import BusClient
from lifx_driver.const import DEVICE_SIGNATURES, LIFX_VERSION
from lifx_driver.correlation import correlation_context
from lifx_driver.exceptions import BootstrapError
from lifx_driver.instrumentation import configure_timing
from lifx_driver.light import Light
from lifx_driver.logging_abstraction import configure_logging, get_logger
from lifx_driver.structs import DriverConfig, LightConfig, parse_light_config
from lifx_driver.transport.client import LifxLanClient, device_serial
from lifx_driver.transport.exceptions import ActuationError

if TYPE_CHECKING:
    from lifx.devices.base import Device

logger = get_logger(__name__)

# Quiet the MQTT library's own chatter
mqtt_logger = logging.getLogger("mqtt")
mqtt_logger.setLevel(logging.ERROR)
mqtt_logger.propagate = False


class LifxDriver:
    """Process-level wiring: bus, LAN client and one Light per discovered bulb."""

    lp: str = "LifxDriver:"

    def __init__(
        self,
        config: DriverConfig,
        blink: bool = True,
        bus: BusClient | None = None,
        lan: LifxLanClient | None = None,
    ) -> None:
        self.config = config
        self.blink = blink
        self.bus = bus or BusClient(config)
        self.lan = lan or LifxLanClient(broadcast_address=config.broadcast_address)
        self.lights: dict[str, Light] = {}

    def load_light_config(self) -> dict[str, LightConfig]:
        lp = f"{self.lp}load_light_config:"
        cfg_file = self.config.config_file
        if cfg_file is None:
            return {}
        if not cfg_file.exists():
            logger.warning("%s light config not found, using defaults", lp, extra={"config_path": str(cfg_file)})
            return {}
        return parse_light_config(cfg_file)

    async def _display_name(self, adapter: LanDeviceAdapter, light_config: LightConfig) -> str:
        lp = f"{self.lp}name:"
        if light_config.name:
            return light_config.name
        try:
            label = await adapter.get_label()
        except ActuationError as e:
            logger.debug("%s [%s] label unavailable: %s", lp, adapter.device_id, e)
            label = ""
        return label or f"LIFX {adapter.device_id[-6:]}"

    async def add_light(self, device: Device, light_config: LightConfig) -> Light:
        adapter = LanDeviceAdapter(device, self.config.actuation_timeout)
        name = await self._display_name(adapter, light_config)
        light = Light(adapter.device_id, name, adapter)
        device_bus = await self.bus.announce_device(light.id, name, DEVICE_SIGNATURES)
        await light.announce(device_bus)
        self.lights[light.id] = light
        return light

    async def start(self) -> None:
        """Connect, discover and announce.

        Raises:
            BootstrapError: the bus is unreachable, an announcement failed, or
                discovery could not run

        """
        lp = f"{self.lp}start:"
        await self.bus.connect()
        await self.bus.announce_driver()

        light_configs = self.load_light_config()
        try:
            devices = await self.lan.discover(self.config.discovery_timeout)
        except ActuationError as e:
            raise BootstrapError("discover", e.reason) from e

        for device in devices:
            serial = device_serial(device)
            light_config = light_configs.get(serial, LightConfig())
            if not light_config.enabled:
                logger.info("%s [%s] disabled in config, skipping", lp, serial)
                continue
            _ = await self.add_light(device, light_config)

        logger.info(
            "%s Lights ready",
            lp,
            extra={"discovered": len(devices), "announced": len(self.lights)},
        )

        if self.blink:
            await blink_all_lights(
                [light.adapter for light in self.lights.values()],
                cycles=self.config.blink_cycles,
                interval=self.config.blink_interval,
            )

    async def run(self) -> None:
        try:
            await self.start()
            await self.bus.receive_forever()
        finally:
            await self.stop()

    async def stop(self) -> None:
        logger.info("%s Shutting down LIFX driver...", self.lp)
        await self.lan.close()
        await self.bus.disconnect()


def signal_handler(signum: int, task: asyncio.Task[None]) -> None:
    logger.info("LIFX driver: Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
    _ = task.cancel()


async def _run(driver: LifxDriver) -> None:
    task = asyncio.current_task()
    assert task is not None
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, partial(signal_handler, signum, task))
    try:
        await driver.run()
    except asyncio.CancelledError:
        logger.info("LIFX driver cancelled, shutting down...")


def parse_cli(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="LIFX light driver")
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    _ = parser.add_argument("--config", help="Path to the YAML light config", default=None, type=Path)
    _ = parser.add_argument("--no-blink", action="store_true", dest="no_blink", help="Skip the startup blink")
    args = parser.parse_args(argv)

    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            logger.error("Environment file not found", extra={"path": str(env_path)})
        elif dotenv.load_dotenv(env_path, override=True):
            logger.info(" Environment variables loaded", extra={"source": str(env_path)})
        else:
            logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})

    return args


def load_config(args: argparse.Namespace) -> DriverConfig:
    """Read the environment (after ``--env``) and apply logging and timing settings from it."""
    config = DriverConfig.from_env()
    if args.config is not None:
        config = config.model_copy(update={"config_file": args.config.expanduser()})
    if args.debug:
        config = config.model_copy(update={"debug": True})

    configure_logging(
        debug=config.debug,
        log_format=config.log_format,
        json_file=config.log_json_file,
        human_output=config.log_human_output,
    )
    configure_timing(config.perf_tracking, config.perf_threshold_ms)
    if config.debug:
        logger.info("Debug logging enabled")
    return config


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the ``lifx-driver`` command."""
    with correlation_context():
        logger.info("Starting LIFX driver", extra={"version": LIFX_VERSION})
        args = parse_cli(argv)
        config = load_config(args)

        driver = LifxDriver(config, blink=not args.no_blink)
        try:
            uvloop.run(_run(driver))
        except BootstrapError as e:
            logger.critical(" Startup failed: %s", e, extra={"stage": e.stage})
            sys.exit(1)
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception(" Fatal error in main loop", extra={"error": str(e)})
            sys.exit(1)
        else:
            logger.info(" LIFX driver stopped gracefully")


if __name__ == "__main__":
    main()
