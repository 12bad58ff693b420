"""Unit tests for driver startup wiring and the command line entry point."""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lifx_driver import instrumentation
from lifx_driver.exceptions import BootstrapError
from lifx_driver.logging_abstraction import PACKAGE_LOGGER, configure_logging
from lifx_driver.main import LifxDriver, load_config, main, parse_cli
from lifx_driver.structs import DriverConfig
from lifx_driver.transport.exceptions import ActuationError, DeviceTimeoutError


def make_device(serial: str, ip: str, label: str = "") -> MagicMock:
    """Stand-in for a lifx-async Device."""
    device = MagicMock()
    device.serial = serial
    device.ip = ip
    device.set_power = AsyncMock()
    device.get_label = AsyncMock(return_value=label)
    return device


@pytest.fixture
def devices() -> dict[str, MagicMock]:
    return {
        "kitchen": make_device("D073D5000001", "10.0.0.2", label="Bulb 1"),
        "porch": make_device("d073d5000002", "10.0.0.3", label="Porch Light"),
        "garage": make_device("d073d5000003", "10.0.0.4"),
    }


@pytest.fixture
def mock_bus() -> MagicMock:
    device_bus = MagicMock()
    device_bus.announce_channel = AsyncMock(side_effect=lambda *args: AsyncMock())
    bus = MagicMock()
    bus.connect = AsyncMock()
    bus.announce_driver = AsyncMock()
    bus.announce_device = AsyncMock(return_value=device_bus)
    bus.receive_forever = AsyncMock()
    bus.disconnect = AsyncMock()
    return bus


@pytest.fixture
def mock_lan(devices: dict[str, MagicMock]) -> MagicMock:
    lan = MagicMock()
    lan.discover = AsyncMock(return_value=list(devices.values()))
    lan.close = AsyncMock()
    return lan


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "lights.yaml"
    path.write_text(
        "lights:\n"
        "  D073D5000001:\n"
        "    name: Kitchen\n"
        "  d073d5000003:\n"
        "    enabled: false\n",
    )
    return path


@pytest.fixture
def restore_runtime_settings():
    """Put logging and timing back to defaults after a test reconfigures them."""
    yield
    configure_logging()
    instrumentation.configure_timing(True, 250)


def make_driver(config: DriverConfig, bus: MagicMock, lan: MagicMock, blink: bool = True) -> LifxDriver:
    return LifxDriver(config, blink=blink, bus=bus, lan=lan)


class TestStart:
    @pytest.mark.asyncio
    async def test_announces_enabled_lights(
        self,
        mock_bus: MagicMock,
        mock_lan: MagicMock,
        devices: dict[str, MagicMock],
        config_file: Path,
    ) -> None:
        driver = make_driver(DriverConfig(config_file=config_file), mock_bus, mock_lan)

        with patch("lifx_driver.main.blink_all_lights", new=AsyncMock()) as blink:
            await driver.start()

        mock_bus.connect.assert_awaited_once()
        mock_bus.announce_driver.assert_awaited_once()
        assert set(driver.lights) == {"d073d5000001", "d073d5000002"}
        names = {c.args[0]: c.args[1] for c in mock_bus.announce_device.await_args_list}
        assert names == {"d073d5000001": "Kitchen", "d073d5000002": "Porch Light"}
        # A configured name skips the label lookup
        devices["kitchen"].get_label.assert_not_awaited()
        devices["garage"].get_label.assert_not_awaited()

        blink.assert_awaited_once()
        adapters = blink.await_args.args[0]
        assert {adapter.device_id for adapter in adapters} == {"d073d5000001", "d073d5000002"}

    @pytest.mark.asyncio
    async def test_label_fallback(self, mock_bus: MagicMock, mock_lan: MagicMock, devices: dict[str, MagicMock]) -> None:
        garage = devices["garage"]
        garage.get_label.side_effect = DeviceTimeoutError("d073d5000003", 2.0)
        mock_lan.discover.return_value = [garage]
        driver = make_driver(DriverConfig(), mock_bus, mock_lan, blink=False)

        await driver.start()

        assert driver.lights["d073d5000003"].name == "LIFX 000003"

    @pytest.mark.asyncio
    async def test_empty_label_fallback(self, mock_bus: MagicMock, mock_lan: MagicMock, devices: dict[str, MagicMock]) -> None:
        mock_lan.discover.return_value = [devices["garage"]]
        driver = make_driver(DriverConfig(), mock_bus, mock_lan, blink=False)

        await driver.start()

        assert driver.lights["d073d5000003"].name == "LIFX 000003"

    @pytest.mark.asyncio
    async def test_no_blink(self, mock_bus: MagicMock, mock_lan: MagicMock) -> None:
        driver = make_driver(DriverConfig(), mock_bus, mock_lan, blink=False)

        with patch("lifx_driver.main.blink_all_lights", new=AsyncMock()) as blink:
            await driver.start()

        blink.assert_not_awaited()
        assert len(driver.lights) == 3

    def test_missing_config_file_uses_defaults(self, mock_bus: MagicMock, mock_lan: MagicMock, tmp_path: Path) -> None:
        driver = make_driver(DriverConfig(config_file=tmp_path / "missing.yaml"), mock_bus, mock_lan, blink=False)

        assert driver.load_light_config() == {}

    @pytest.mark.asyncio
    async def test_discovery_failure_is_bootstrap_error(self, mock_bus: MagicMock, mock_lan: MagicMock) -> None:
        mock_lan.discover.side_effect = ActuationError("discovery failed: address in use")
        driver = make_driver(DriverConfig(), mock_bus, mock_lan)

        with pytest.raises(BootstrapError) as exc_info:
            await driver.run()

        assert exc_info.value.stage == "discover"
        mock_lan.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_skips_discovery(self, mock_bus: MagicMock, mock_lan: MagicMock) -> None:
        mock_bus.connect.side_effect = BootstrapError("connect", "refused")
        driver = make_driver(DriverConfig(), mock_bus, mock_lan)

        with pytest.raises(BootstrapError):
            await driver.run()

        mock_lan.discover.assert_not_awaited()
        mock_lan.close.assert_awaited_once()
        mock_bus.disconnect.assert_awaited_once()


class TestParseCli:
    def test_defaults(self) -> None:
        args = parse_cli([])

        assert args.debug is False
        assert args.no_blink is False
        assert args.config is None
        assert args.env is None

    def test_flags(self) -> None:
        args = parse_cli(["--no-blink", "--config", "lights.yaml"])

        assert args.no_blink is True
        assert args.config == Path("lights.yaml")

    def test_env_file_loaded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / "driver.env"
        env_file.write_text("LIFX_MQTT_HOST=mqtt.example\n")
        monkeypatch.setenv("LIFX_MQTT_HOST", "localhost")

        _ = parse_cli(["--env", str(env_file)])

        assert DriverConfig.from_env().mqtt_host == "mqtt.example"


@pytest.mark.usefixtures("restore_runtime_settings")
class TestLoadConfig:
    """Settings that only exist in the --env file still take effect."""

    def test_env_file_debug_and_timing_applied(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / "driver.env"
        env_file.write_text("LIFX_DEBUG=1\nLIFX_PERF_TRACKING=false\nLIFX_PERF_THRESHOLD_MS=40\n")
        for name in ("LIFX_DEBUG", "LIFX_PERF_TRACKING", "LIFX_PERF_THRESHOLD_MS"):
            monkeypatch.setenv(name, "placeholder")
            monkeypatch.delenv(name)

        config = load_config(parse_cli(["--env", str(env_file)]))

        assert config.debug is True
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
        assert instrumentation.settings.enabled is False
        assert instrumentation.settings.threshold_ms == 40

    def test_json_log_file_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        log_file = tmp_path / "driver.jsonl"
        monkeypatch.setenv("LIFX_LOG_FORMAT", "json")
        monkeypatch.setenv("LIFX_LOG_JSON_FILE", str(log_file))

        _ = load_config(parse_cli([]))
        logging.getLogger("lifx_driver.main").warning("bulb offline")

        assert "bulb offline" in log_file.read_text()

    def test_cli_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LIFX_DEBUG", raising=False)

        config = load_config(parse_cli(["--debug", "--config", "~/lights.yaml"]))

        assert config.debug is True
        assert config.config_file == Path("~/lights.yaml").expanduser()


class TestMain:
    def test_bootstrap_error_exits_non_zero(self) -> None:
        def fail(coro: object) -> None:
            coro.close()  # type: ignore[attr-defined]
            raise BootstrapError("connect", "refused")

        with patch("lifx_driver.main.uvloop.run", side_effect=fail), pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1

    def test_clean_shutdown(self) -> None:
        def finish(coro: object) -> None:
            coro.close()  # type: ignore[attr-defined]

        with patch("lifx_driver.main.uvloop.run", side_effect=finish) as run:
            main(["--no-blink"])

        run.assert_called_once()
