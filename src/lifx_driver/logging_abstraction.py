"""Driver logging.

Every module logs through ``get_logger(__name__)``. The returned adapter accepts
an ``extra=`` mapping of structured context, which both formatters render next
to the message together with the active correlation id.

Handlers live on the ``lifx_driver`` package logger only; module loggers
propagate to it (and on to the root logger, so host handlers and pytest's
``caplog`` still see every record). ``configure_logging`` replaces them, which
is how ``main`` applies settings loaded from an ``--env`` file.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping, MutableMapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, override

from lifx_driver import const
from lifx_driver.correlation import get_correlation_id

__all__ = [
    "PACKAGE_LOGGER",
    "DriverLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_logging",
    "get_logger",
]

PACKAGE_LOGGER = "lifx_driver"

# Marks handlers installed by configure_logging so a reconfigure only removes ours
_OWNED_ATTR = "_lifx_driver_handler"
_configured = False


def _context(record: logging.LogRecord) -> dict[str, object]:
    extra_data = getattr(record, "extra_data", None)
    return dict(extra_data) if isinstance(extra_data, Mapping) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shipping."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        if context := _context(record):
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"
        line = super().format(record)
        if context := _context(record):
            line += " | " + " | ".join(f"{key}={value}" for key, value in context.items())
        return line


class DriverLogger(logging.LoggerAdapter[logging.Logger]):
    """Logger adapter that files ``extra=`` under a single ``extra_data`` attribute.

    Keeping the context in one attribute lets the formatters tell it apart from
    the standard LogRecord fields.
    """

    @override
    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = kwargs.pop("extra", None)
        if extra:
            kwargs["extra"] = {"extra_data": dict(extra)}
        return msg, kwargs


def _human_handler(output: str) -> logging.Handler:
    match output:
        case "stdout":
            return logging.StreamHandler(sys.stdout)
        case "stderr":
            return logging.StreamHandler(sys.stderr)
        case _:
            path = Path(output)
            path.parent.mkdir(parents=True, exist_ok=True)
            return logging.FileHandler(path, mode="a")


def configure_logging(
    debug: bool = const.LIFX_DEBUG,
    log_format: str = const.LIFX_LOG_FORMAT,
    json_file: str | Path | None = const.LIFX_LOG_JSON_FILE,
    human_output: str = const.LIFX_LOG_HUMAN_OUTPUT,
) -> None:
    """(Re)install the package handlers.

    Args:
        debug: DEBUG level instead of INFO
        log_format: "json", "human", or "both"
        json_file: JSON lines file; JSON output is skipped without one
        human_output: "stdout", "stderr", or a file path

    """
    global _configured  # noqa: PLW0603
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in package_logger.handlers if getattr(h, _OWNED_ATTR, False)]:
        package_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if log_format in ("json", "both") and json_file:
        json_path = Path(json_file)
        try:
            json_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler: logging.Handler = logging.FileHandler(json_path, mode="a")
        except OSError as e:
            print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)
        else:
            json_handler.setFormatter(JSONFormatter())
            handlers.append(json_handler)

    if log_format in ("human", "both"):
        try:
            human_handler = _human_handler(human_output or "stdout")
        except OSError as e:
            print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
            human_handler = logging.StreamHandler(sys.stdout)
        human_handler.setFormatter(HumanReadableFormatter())
        handlers.append(human_handler)

    for handler in handlers:
        setattr(handler, _OWNED_ATTR, True)
        package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    _configured = True


def get_logger(name: str) -> DriverLogger:
    """Adapter for ``name``; the package handlers are installed on first use."""
    if not _configured:
        configure_logging()
    return DriverLogger(logging.getLogger(name))
