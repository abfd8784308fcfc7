"""
Configuration management for the sensor dashboard backend
"""

import yaml
from typing import Dict, List, Optional
from pathlib import Path
from pydantic_settings import BaseSettings

from sensor_dashboard.app.utilities.telemetry import logger


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    api_title: str = "Sensor Dashboard API"
    api_version: str = "1.0.0"
    api_description: str = "Sensor dashboard backend with a simulated Modbus RTU bus"
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json_compact"
    log_file_path: Optional[str] = None
    packet_log_file: Optional[str] = "logs/modbus_packets.jsonl"
    event_log_file: Optional[str] = "logs/modbus.log"
    data_log_max_bytes: int = 5 * 1024 * 1024
    data_log_backup_count: int = 1

    # Simulated bus
    packet_log_capacity: int = 100
    default_latency_ms: float = 50.0
    max_latency_ms: float = 100.0
    response_timeout_ms: float = 2000.0
    connect_delay_ms: float = 100.0
    disconnect_delay_ms: float = 50.0
    failure_probability: float = 0.05
    read_drift: int = 5
    seed_register_count: int = 100
    input_register_offset: int = 3
    invalid_port: str = "ERROR"
    crc_mode: str = "synthetic"
    serialize_transactions: bool = True
    random_seed: Optional[int] = None

    # Device register seeds
    device_config_file: Optional[str] = "config/devices.yaml"

    class Config:
        env_file = ".env"
        env_prefix = "DASHBOARD_"


settings = Settings()


class ConfigManager:
    """Loads device register seed files for the simulated bus"""

    def __init__(self, settings: Settings = settings):
        self.settings = settings
        self.device_seeds: Dict[int, Dict[int, int]] = {}

    def load_device_seeds(self, path: Optional[str] = None) -> Dict[int, Dict[int, int]]:
        """
        Load fixed register values per device address from YAML.

        Expected layout::

            devices:
              1:
                description: "Greenhouse sensor"
                registers:
                  0: 215
                  1: 480

        Returns an empty mapping when no file is configured or it does not exist.
        """
        config_path = path or self.settings.device_config_file
        if not config_path:
            return {}

        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning(f"Device config file not found: {config_file}")
            return {}

        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}

        seeds: Dict[int, Dict[int, int]] = {}
        for device_address, device_config in (data.get('devices') or {}).items():
            device_address = int(device_address)
            if not 1 <= device_address <= 247:
                raise ValueError(f"Device address {device_address} in {config_file} is outside 1..247")

            registers = (device_config or {}).get('registers') or {}
            # Convert string keys to integers
            seeds[device_address] = {int(index): int(value) for index, value in registers.items()}

        self.device_seeds = seeds
        logger.info(f"Loaded register seeds for {len(seeds)} devices", extra={
            "component": "config",
            "path": str(config_file)
        })
        return seeds
