"""Unit tests for NotificationEmitter."""

import logging
from unittest.mock import AsyncMock

import pytest

from lifx_driver.emitter import NotificationEmitter


class TestNotificationEmitter:
    @pytest.mark.asyncio
    async def test_emit_publishes_state_event_on_bound_channel(self) -> None:
        emitter = NotificationEmitter("d073d5001234")
        on_off = AsyncMock()
        color = AsyncMock()
        emitter.bind("on-off", on_off)
        emitter.bind("color", color)

        await emitter.emit("color", {"on": True})

        color.send_event.assert_awaited_once_with("state", {"on": True})
        on_off.send_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unbound_channel_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        emitter = NotificationEmitter("d073d5001234")
        caplog.set_level(logging.DEBUG, logger="lifx_driver.emitter")

        await emitter.emit("brightness", {"bri": 1})

        assert not emitter.is_bound("brightness")
        assert "not bound" in caplog.text

    def test_rebind_replaces_publisher(self) -> None:
        emitter = NotificationEmitter("d073d5001234")
        first, second = AsyncMock(), AsyncMock()

        emitter.bind("on-off", first)
        emitter.bind("on-off", second)

        assert emitter._publishers["on-off"] is second
