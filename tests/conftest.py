import asyncio
import random

import pytest
from fastapi.testclient import TestClient

from sensor_dashboard.app.api.v1.main import create_app
from sensor_dashboard.app.core.bus import ModbusBus
from sensor_dashboard.app.models.bus_config import SimulationConfig


def _instant_config(**overrides) -> SimulationConfig:
    """Bus settings with every simulated delay and fault switched off"""
    values = dict(
        default_latency_ms=0,
        max_latency_ms=0,
        connect_delay_ms=0,
        disconnect_delay_ms=0,
        failure_probability=0.0,
    )
    values.update(overrides)
    return SimulationConfig(**values)


@pytest.fixture
def make_config():
    return _instant_config


@pytest.fixture
def make_bus():
    buses = []

    def factory(seed: int = 1234, **overrides) -> ModbusBus:
        bus = ModbusBus(_instant_config(**overrides), rng=random.Random(seed))
        buses.append(bus)
        return bus

    yield factory

    for bus in buses:
        bus.packet_log.close()
        bus.journal.close()


@pytest.fixture
def bus(make_bus) -> ModbusBus:
    return make_bus()


@pytest.fixture
def open_bus(bus) -> ModbusBus:
    asyncio.run(bus.connect("COM1"))
    return bus


@pytest.fixture
def make_client(make_bus):
    clients = []

    def factory(**overrides) -> TestClient:
        client = TestClient(create_app(bus=make_bus(**overrides)))
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
