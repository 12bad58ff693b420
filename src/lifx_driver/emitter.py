"""Outbound "state" notifications for a single light."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from lifx_driver.const import STATE_EVENT
from lifx_driver.logging_abstraction import get_logger

logger = get_logger(__name__)


class EventPublisher(Protocol):
    """Publish handle for one announced channel."""

    async def send_event(self, event: str, payload: Mapping[str, object]) -> None: ...


class NotificationEmitter:
    """Routes state snapshots to the publish handle of the channel that caused them."""

    lp: str = "NotificationEmitter:"

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        self._publishers: dict[str, EventPublisher] = {}

    def bind(self, channel: str, publisher: EventPublisher) -> None:
        self._publishers[channel] = publisher

    def is_bound(self, channel: str) -> bool:
        return channel in self._publishers

    async def emit(self, channel: str, snapshot: Mapping[str, object]) -> None:
        """Publish ``snapshot`` as a "state" event on ``channel``.

        Channels that were never announced have no publisher; the event is
        skipped with a debug log.
        """
        lp = f"{self.lp}emit:"
        publisher = self._publishers.get(channel)
        if publisher is None:
            logger.debug("%s [%s] channel '%s' not bound, skipping event", lp, self.device_id, channel)
            return
        logger.debug(
            "%s [%s] %s event on '%s'",
            lp,
            self.device_id,
            STATE_EVENT,
            channel,
            extra={"device_id": self.device_id, "channel": channel, "snapshot": dict(snapshot)},
        )
        await publisher.send_event(STATE_EVENT, snapshot)
