"""
Shared fixtures for unit tests.

Provides a light wired to a mock device adapter and one mock publisher per
channel, so tests can assert on actuation calls and emitted events.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from lifx_driver.light import Light

SERIAL = "d073d5001234"
CHANNEL_NAMES = ("on-off", "brightness", "color", "core.batching")


@pytest.fixture
def mock_adapter() -> MagicMock:
    """
    Mock DeviceAdapter.

    The bulb reports power off unless a test overrides get_power.
    """
    adapter = MagicMock()
    adapter.device_id = SERIAL
    adapter.turn_on = AsyncMock()
    adapter.turn_off = AsyncMock()
    adapter.get_power = AsyncMock(return_value=False)
    return adapter


@pytest.fixture
def publishers() -> dict[str, AsyncMock]:
    """One mock publish handle per channel, keyed by channel name."""
    return {name: AsyncMock() for name in CHANNEL_NAMES}


@pytest.fixture
def light(mock_adapter: MagicMock, publishers: dict[str, AsyncMock]) -> Light:
    """Fresh light with every channel bound to its mock publisher."""
    bulb = Light(SERIAL, "Test Bulb", mock_adapter)
    for name, publisher in publishers.items():
        bulb.emitter.bind(name, publisher)
    return bulb
