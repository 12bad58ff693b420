"""Unit tests for environment and YAML configuration."""

from pathlib import Path

import pytest
import yaml

from lifx_driver.structs import DriverConfig, LightConfig, parse_light_config


class TestDriverConfig:
    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIFX_MQTT_HOST", "broker.lan")
        monkeypatch.setenv("LIFX_MQTT_PORT", "1884")
        monkeypatch.setenv("LIFX_TOPIC", "/home/lifx/")
        monkeypatch.setenv("LIFX_ACTUATION_TIMEOUT", "0.5")
        monkeypatch.setenv("LIFX_CONFIG_FILE", "/etc/lifx/lights.yaml")

        config = DriverConfig.from_env()

        assert config.mqtt_host == "broker.lan"
        assert config.mqtt_port == 1884
        assert config.topic == "home/lifx"
        assert config.actuation_timeout == 0.5
        assert config.config_file == Path("/etc/lifx/lights.yaml")

    def test_from_env_runtime_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIFX_DEBUG", "Yes")
        monkeypatch.setenv("LIFX_LOG_FORMAT", "both")
        monkeypatch.setenv("LIFX_LOG_JSON_FILE", "/var/log/lifx.jsonl")
        monkeypatch.setenv("LIFX_PERF_TRACKING", "0")
        monkeypatch.setenv("LIFX_PERF_THRESHOLD_MS", "500")
        monkeypatch.setenv("LIFX_BROADCAST_ADDRESS", "192.168.1.255")

        config = DriverConfig.from_env()

        assert config.debug is True
        assert config.log_format == "both"
        assert config.log_json_file == Path("/var/log/lifx.jsonl")
        assert config.perf_tracking is False
        assert config.perf_threshold_ms == 500
        assert config.broadcast_address == "192.168.1.255"

    def test_client_suffix_is_unique(self) -> None:
        assert DriverConfig().client_suffix != DriverConfig().client_suffix

    @pytest.mark.parametrize("field", [{"mqtt_port": 0}, {"actuation_timeout": 0}, {"blink_cycles": -1}])
    def test_invalid_values_rejected(self, field: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            DriverConfig(**field)  # type: ignore[arg-type]


class TestParseLightConfig:
    def test_parses_lights(self, tmp_path: Path) -> None:
        path = tmp_path / "lights.yaml"
        path.write_text(
            "lights:\n"
            "  D073D5001234:\n"
            "    name: Kitchen\n"
            "    color: red\n"
            "  d073d5005678:\n"
            "    enabled: false\n"
            "  d073d5009999:\n",
        )

        lights = parse_light_config(path)

        assert lights == {
            "d073d5001234": LightConfig(name="Kitchen"),
            "d073d5005678": LightConfig(enabled=False),
            "d073d5009999": LightConfig(),
        }

    def test_invalid_entry_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "lights.yaml"
        path.write_text("lights:\n  d073d5001234:\n    enabled: [1, 2]\n  d073d5005678:\n    name: Porch\n")

        assert set(parse_light_config(path)) == {"d073d5005678"}

    def test_missing_section(self, tmp_path: Path) -> None:
        path = tmp_path / "lights.yaml"
        path.write_text("other: 1\n")

        assert parse_light_config(path) == {}

    def test_bad_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "lights.yaml"
        path.write_text("lights: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            parse_light_config(path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            parse_light_config(tmp_path / "nope.yaml")
