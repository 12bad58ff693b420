"""Correlation ids for inbound bus commands.

The bus router opens a ``correlation_context`` around every command it hands
to a light, so validation errors, LAN actuation and the resulting event all log
under the same id. The id lives in a ``ContextVar`` and therefore follows the
command into any task it awaits.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

__all__ = ["correlation_context", "get_correlation_id", "new_correlation_id"]

_current: ContextVar[str | None] = ContextVar("lifx_correlation_id", default=None)


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:16]


def get_correlation_id() -> str | None:
    return _current.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Scope a correlation id (a fresh one unless given) to the ``with`` block."""
    correlation_id = correlation_id or new_correlation_id()
    token = _current.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _current.reset(token)
