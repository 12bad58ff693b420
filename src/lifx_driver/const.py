import os

from lifx_driver import __version__

__all__ = [
    "DEVICE_SIGNATURES",
    "LIFX_ACTUATION_TIMEOUT",
    "LIFX_BLINK_CYCLES",
    "LIFX_BLINK_INTERVAL",
    "LIFX_BROADCAST_ADDRESS",
    "LIFX_CONFIG_FILE",
    "LIFX_DEBUG",
    "LIFX_DISCOVERY_TIMEOUT",
    "LIFX_DRIVER_NAME",
    "LIFX_LOG_FORMAT",
    "LIFX_LOG_HUMAN_OUTPUT",
    "LIFX_LOG_JSON_FILE",
    "LIFX_MQTT_HOST",
    "LIFX_MQTT_PASS",
    "LIFX_MQTT_PORT",
    "LIFX_MQTT_USER",
    "LIFX_PERF_THRESHOLD_MS",
    "LIFX_PERF_TRACKING",
    "LIFX_TOPIC",
    "LIFX_VERSION",
    "STATE_EVENT",
    "STATUS_OFFLINE",
    "STATUS_ONLINE",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
LIFX_VERSION: str = __version__


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


LIFX_MQTT_HOST: str = os.environ.get("LIFX_MQTT_HOST", "localhost")
LIFX_MQTT_PORT: int = _env_int("LIFX_MQTT_PORT", 1883)
LIFX_MQTT_USER: str | None = os.environ.get("LIFX_MQTT_USER") or None
LIFX_MQTT_PASS: str | None = os.environ.get("LIFX_MQTT_PASS") or None
LIFX_TOPIC: str = os.environ.get("LIFX_TOPIC", "lifx")
LIFX_DRIVER_NAME: str = os.environ.get("LIFX_DRIVER_NAME", "driver-lifx")
LIFX_CONFIG_FILE: str | None = os.environ.get("LIFX_CONFIG_FILE") or None

LIFX_DEBUG: bool = os.environ.get("LIFX_DEBUG", "0").casefold() in YES_ANSWER

# Device I/O
LIFX_BROADCAST_ADDRESS: str = os.environ.get("LIFX_BROADCAST_ADDRESS", "255.255.255.255")
LIFX_ACTUATION_TIMEOUT: float = _env_float("LIFX_ACTUATION_TIMEOUT", 2.0)
LIFX_DISCOVERY_TIMEOUT: float = _env_float("LIFX_DISCOVERY_TIMEOUT", 3.0)

# Startup self-test
LIFX_BLINK_CYCLES: int = _env_int("LIFX_BLINK_CYCLES", 3)
LIFX_BLINK_INTERVAL: float = _env_float("LIFX_BLINK_INTERVAL", 1.0)

# Bus vocabulary
STATE_EVENT: str = "state"
STATUS_ONLINE: bytes = b"online"
STATUS_OFFLINE: bytes = b"offline"
DEVICE_SIGNATURES: dict[str, str] = {
    "ninja:manufacturer": "Lifx",
    "ninja:productName": "Lifx",
    "manufacturer:productModelId": "Lifx",
    "ninja:productType": "Light",
    "ninja:thingType": "light",
}

# Logging Configuration
LIFX_LOG_FORMAT: str = os.environ.get("LIFX_LOG_FORMAT", "human")  # "json", "human", or "both"
LIFX_LOG_JSON_FILE: str | None = os.environ.get("LIFX_LOG_JSON_FILE") or None
LIFX_LOG_HUMAN_OUTPUT: str = os.environ.get("LIFX_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path

# Performance Instrumentation
LIFX_PERF_TRACKING: bool = os.environ.get("LIFX_PERF_TRACKING", "true").casefold() in YES_ANSWER
_perf_threshold = os.environ.get("LIFX_PERF_THRESHOLD_MS", "250")
LIFX_PERF_THRESHOLD_MS: int = int(_perf_threshold) if _perf_threshold and _perf_threshold.isdigit() else 250
