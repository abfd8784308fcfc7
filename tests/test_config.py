import pytest

from sensor_dashboard.app.api.v1.main import build_bus
from sensor_dashboard.app.config import ConfigManager, Settings
from sensor_dashboard.app.models.bus_config import SimulationConfig

DEVICES_YAML = """
devices:
  1:
    description: "Greenhouse"
    registers:
      0: 215
      1: 480
  7:
    registers:
      "12": 70000
"""


def test_load_device_seeds(tmp_path) -> None:
    path = tmp_path / "devices.yaml"
    path.write_text(DEVICES_YAML)

    seeds = ConfigManager(Settings(device_config_file=str(path))).load_device_seeds()

    assert seeds == {1: {0: 215, 1: 480}, 7: {12: 70000}}


def test_missing_device_file_yields_no_seeds(tmp_path) -> None:
    manager = ConfigManager(Settings(device_config_file=str(tmp_path / "absent.yaml")))
    assert manager.load_device_seeds() == {}
    assert ConfigManager(Settings(device_config_file=None)).load_device_seeds() == {}


def test_device_address_outside_modbus_range(tmp_path) -> None:
    path = tmp_path / "devices.yaml"
    path.write_text("devices:\n  300:\n    registers:\n      0: 1\n")
    with pytest.raises(ValueError):
        ConfigManager(Settings()).load_device_seeds(str(path))


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("DASHBOARD_FAILURE_PROBABILITY", "0.25")
    monkeypatch.setenv("DASHBOARD_CRC_MODE", "crc16")

    config = SimulationConfig.from_settings(Settings())

    assert config.failure_probability == 0.25
    assert config.crc_mode == "crc16"
    assert config.packet_log_capacity == 100


def test_build_bus_preloads_device_seeds(tmp_path) -> None:
    path = tmp_path / "devices.yaml"
    path.write_text(DEVICES_YAML)
    settings = Settings(
        device_config_file=str(path),
        packet_log_file=None,
        event_log_file=None,
        random_seed=5
    )

    bus = build_bus(settings)

    assert bus.registers.peek_registers(1, 0, 2) == [215, 480]
    assert bus.registers.peek_registers(7, 12, 1) == [65535]
    assert bus.config.random_seed == 5
