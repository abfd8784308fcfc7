from dataclasses import dataclass
from typing import Optional


@dataclass()
class SimulationConfig:
    """Tuning knobs for one simulated Modbus RTU bus"""
    default_latency_ms: float = 50.0
    max_latency_ms: float = 100.0
    response_timeout_ms: float = 2000.0  # applied on connect, caps latency at max_latency_ms
    connect_delay_ms: float = 100.0
    disconnect_delay_ms: float = 50.0
    failure_probability: float = 0.05
    read_drift: int = 5  # 0 makes register reads side-effect free
    seed_register_count: int = 100
    input_register_offset: int = 3
    invalid_port: str = "ERROR"
    crc_mode: str = "synthetic"  # "synthetic" or "crc16"
    packet_log_capacity: int = 100
    serialize_transactions: bool = True
    random_seed: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> "SimulationConfig":
        return cls(
            default_latency_ms=settings.default_latency_ms,
            max_latency_ms=settings.max_latency_ms,
            response_timeout_ms=settings.response_timeout_ms,
            connect_delay_ms=settings.connect_delay_ms,
            disconnect_delay_ms=settings.disconnect_delay_ms,
            failure_probability=settings.failure_probability,
            read_drift=settings.read_drift,
            seed_register_count=settings.seed_register_count,
            input_register_offset=settings.input_register_offset,
            invalid_port=settings.invalid_port,
            crc_mode=settings.crc_mode,
            packet_log_capacity=settings.packet_log_capacity,
            serialize_transactions=settings.serialize_transactions,
            random_seed=settings.random_seed,
        )
