import asyncio

import pytest

from sensor_dashboard.app.core.bus_exceptions import BusConnectionError, NotConnectedError
from sensor_dashboard.app.core.connection_manager import ConnectionManager
from sensor_dashboard.app.models.bus import ConnectionState, SerialParams


@pytest.fixture
def manager(make_config) -> ConnectionManager:
    return ConnectionManager(make_config())


def test_initial_state_is_closed(manager: ConnectionManager) -> None:
    status = manager.status()
    assert status.state == ConnectionState.CLOSED
    assert status.port is None
    assert not status.is_open


def test_connect_opens_and_records_port(manager: ConnectionManager) -> None:
    params = SerialParams(baud_rate=19200, parity="even")
    status = asyncio.run(manager.connect("/dev/ttyUSB0", params))

    assert status.is_open
    assert status.port == "/dev/ttyUSB0"
    assert status.serial_params.baud_rate == 19200
    manager.ensure_open()


def test_connect_to_invalid_port_moves_to_error(manager: ConnectionManager) -> None:
    with pytest.raises(BusConnectionError) as excinfo:
        asyncio.run(manager.connect("ERROR"))

    assert excinfo.value.port == "ERROR"
    assert manager.state == ConnectionState.ERROR
    assert manager.status().last_error
    with pytest.raises(NotConnectedError):
        manager.ensure_open()


def test_reconnect_replaces_open_connection(manager: ConnectionManager) -> None:
    asyncio.run(manager.connect("COM1"))
    status = asyncio.run(manager.connect("COM2"))
    assert status.is_open
    assert status.port == "COM2"


def test_disconnect_is_idempotent(manager: ConnectionManager) -> None:
    first = asyncio.run(manager.disconnect())
    second = asyncio.run(manager.disconnect())
    assert first.state == ConnectionState.CLOSED
    assert second.state == ConnectionState.CLOSED


def test_disconnect_after_error_returns_to_closed(manager: ConnectionManager) -> None:
    with pytest.raises(BusConnectionError):
        asyncio.run(manager.connect("ERROR"))
    status = asyncio.run(manager.disconnect())
    assert status.state == ConnectionState.CLOSED


def test_ensure_open_when_closed(manager: ConnectionManager) -> None:
    with pytest.raises(NotConnectedError):
        manager.ensure_open()
