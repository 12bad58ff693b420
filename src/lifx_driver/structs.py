"""Configuration models.

``DriverConfig`` is a validated snapshot of the ``LIFX_*`` environment. The
optional YAML light file maps bulb serials to per-light settings::

    lights:
      d073d5001234:
        name: Kitchen
      d073d5005678:
        enabled: false
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lifx_driver import const
from lifx_driver.logging_abstraction import get_logger

logger = get_logger(__name__)


def _flag(raw: str | None, default: bool) -> bool:
    return default if raw is None else raw.casefold() in const.YES_ANSWER


class DriverConfig(BaseModel):
    """Environment variables for the driver process."""

    mqtt_host: str = "localhost"
    mqtt_port: int = Field(default=1883, ge=1, le=65535)
    mqtt_user: str | None = None
    mqtt_pass: str | None = None
    topic: str = "lifx"
    driver_name: str = "driver-lifx"
    config_file: Path | None = None
    actuation_timeout: float = Field(default=2.0, gt=0)
    discovery_timeout: float = Field(default=3.0, gt=0)
    blink_cycles: int = Field(default=3, ge=0)
    blink_interval: float = Field(default=1.0, ge=0)
    client_suffix: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    broadcast_address: str = "255.255.255.255"
    debug: bool = False
    log_format: str = "human"
    log_json_file: Path | None = None
    log_human_output: str = "stdout"
    perf_tracking: bool = True
    perf_threshold_ms: int = Field(default=250, ge=0)

    @field_validator("topic")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/") or "lifx"

    @classmethod
    def from_env(cls) -> DriverConfig:
        """Build from the current process environment.

        Reads ``os.environ`` directly so values loaded with ``--env`` after
        import are picked up; ``const`` supplies the defaults.
        """
        env = os.environ
        config_file = env.get("LIFX_CONFIG_FILE") or const.LIFX_CONFIG_FILE
        return cls(
            mqtt_host=env.get("LIFX_MQTT_HOST", const.LIFX_MQTT_HOST),
            mqtt_port=env.get("LIFX_MQTT_PORT") or const.LIFX_MQTT_PORT,
            mqtt_user=env.get("LIFX_MQTT_USER") or const.LIFX_MQTT_USER,
            mqtt_pass=env.get("LIFX_MQTT_PASS") or const.LIFX_MQTT_PASS,
            topic=env.get("LIFX_TOPIC", const.LIFX_TOPIC),
            driver_name=env.get("LIFX_DRIVER_NAME", const.LIFX_DRIVER_NAME),
            config_file=Path(config_file).expanduser() if config_file else None,
            actuation_timeout=env.get("LIFX_ACTUATION_TIMEOUT") or const.LIFX_ACTUATION_TIMEOUT,
            discovery_timeout=env.get("LIFX_DISCOVERY_TIMEOUT") or const.LIFX_DISCOVERY_TIMEOUT,
            blink_cycles=env.get("LIFX_BLINK_CYCLES") or const.LIFX_BLINK_CYCLES,
            blink_interval=env.get("LIFX_BLINK_INTERVAL") or const.LIFX_BLINK_INTERVAL,
            broadcast_address=env.get("LIFX_BROADCAST_ADDRESS", const.LIFX_BROADCAST_ADDRESS),
            debug=_flag(env.get("LIFX_DEBUG"), const.LIFX_DEBUG),
            log_format=env.get("LIFX_LOG_FORMAT", const.LIFX_LOG_FORMAT),
            log_json_file=env.get("LIFX_LOG_JSON_FILE") or const.LIFX_LOG_JSON_FILE,
            log_human_output=env.get("LIFX_LOG_HUMAN_OUTPUT", const.LIFX_LOG_HUMAN_OUTPUT),
            perf_tracking=_flag(env.get("LIFX_PERF_TRACKING"), const.LIFX_PERF_TRACKING),
            perf_threshold_ms=env.get("LIFX_PERF_THRESHOLD_MS") or const.LIFX_PERF_THRESHOLD_MS,
        )


class LightConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    enabled: bool = True


def parse_light_config(config_file: Path) -> dict[str, LightConfig]:
    """Parse the YAML light file into ``{serial: LightConfig}``.

    Serials are lower-cased. Entries that fail validation are skipped with a
    warning.

    Raises:
        OSError: the file cannot be read
        yaml.YAMLError: the file is not valid YAML

    """
    logger.debug("Parsing light config file: %s", config_file)
    try:
        with config_file.open() as f:
            config_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        logger.exception("Failed to parse light config file: %s", config_file)
        raise

    lights: dict[str, LightConfig] = {}
    if not isinstance(config_data, dict) or not isinstance(config_data.get("lights"), dict):
        logger.warning("No 'lights' section found in %s", config_file)
        return lights

    for serial, entry in config_data["lights"].items():
        try:
            lights[str(serial).lower()] = LightConfig.model_validate(entry or {})
        except ValidationError as e:
            logger.warning("Skipping light '%s': %s", serial, e.errors(include_url=False))

    logger.info("Parsed light config: %d entries", len(lights))
    return lights
