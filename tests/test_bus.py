import asyncio
import json

import pytest

from sensor_dashboard.app.core.bus import ModbusBus
from sensor_dashboard.app.core.bus_exceptions import (
    BusConnectionError, NotConnectedError, UnsupportedFunctionError
)
from sensor_dashboard.app.core.event_journal import EventJournal
from sensor_dashboard.app.models.bus import ConnectionState, PacketType, TransactionRequest


def holding_read(address: int = 0, quantity: int = 1, device: int = 1, code: int = 3) -> TransactionRequest:
    return TransactionRequest(function_code=code, device_address=device, start_address=address, quantity=quantity)


def test_successful_read_logs_request_and_response(open_bus: ModbusBus) -> None:
    result = asyncio.run(open_bus.read(holding_read(quantity=4)))

    assert result.ok
    assert len(result.values) == 4
    packets = open_bus.list_packets()
    assert len(packets) == 2
    response, request = packets
    assert request.type == PacketType.REQUEST
    assert response.type == PacketType.RESPONSE
    assert request.data == "00000004"
    assert response.data == "08" + "".join(f"{v:04x}" for v in result.values)
    assert all(p.device_address == 1 and p.function_code == 3 for p in packets)


def test_coil_read_returns_booleans(open_bus: ModbusBus) -> None:
    result = asyncio.run(open_bus.read(holding_read(quantity=3, code=1)))
    assert result.values == [True, False, False]
    assert open_bus.list_packets()[0].data == "0101"


def test_write_then_read_round_trip(open_bus: ModbusBus) -> None:
    write = asyncio.run(open_bus.write(2, 0x10, 1234))
    assert write.ok
    assert open_bus.list_packets()[0].data == "001004d2"

    value = asyncio.run(open_bus.read(holding_read(address=0x10, device=2))).values[0]
    assert abs(value - 1234) <= 5
    assert len(open_bus.list_packets()) == 4


def test_write_clamps_value_before_framing(open_bus: ModbusBus) -> None:
    asyncio.run(open_bus.write(1, 0, 70000))
    assert open_bus.list_packets()[0].data == "0000ffff"
    assert open_bus.registers.peek_registers(1, 0, 1) == [65535]


def test_read_while_closed_logs_nothing(bus: ModbusBus) -> None:
    with pytest.raises(NotConnectedError):
        asyncio.run(bus.read(holding_read()))
    with pytest.raises(NotConnectedError):
        asyncio.run(bus.write(1, 0, 1))
    assert bus.list_packets() == []


@pytest.mark.parametrize("code", [5, 6, 99])
def test_unsupported_read_code_logs_nothing(open_bus: ModbusBus, code: int) -> None:
    with pytest.raises(UnsupportedFunctionError):
        asyncio.run(open_bus.read(holding_read(code=code)))
    assert open_bus.list_packets() == []


def test_failed_read_returns_fallback_and_exception_packet(make_bus) -> None:
    bus = make_bus(failure_probability=1.0)
    asyncio.run(bus.connect("COM1"))
    bus.registers.preload(1, {0: 111, 1: 222})

    result = asyncio.run(bus.read(holding_read(quantity=2)))

    assert not result.ok
    assert result.values == [111, 222]
    assert result.error == "Simulated communication error"
    response, request = bus.list_packets()
    assert request.is_valid
    assert response.function_code == 0x83
    assert response.data == "04"
    assert response.is_valid is False


def test_failed_write_uses_write_exception_code(make_bus) -> None:
    bus = make_bus(failure_probability=1.0)
    asyncio.run(bus.connect("COM1"))
    result = asyncio.run(bus.write(1, 4, 77))
    assert not result.ok
    assert bus.list_packets()[0].function_code == 0x86


def test_failed_connect_does_not_open(bus: ModbusBus) -> None:
    with pytest.raises(BusConnectionError):
        asyncio.run(bus.connect("ERROR"))
    assert bus.status().state == ConnectionState.ERROR
    assert bus.list_packets() == []


def test_concurrent_reads_keep_request_response_pairs_adjacent(open_bus: ModbusBus) -> None:
    async def burst():
        await asyncio.gather(*(open_bus.read(holding_read(address=i, device=i + 1)) for i in range(5)))

    asyncio.run(burst())

    packets = open_bus.list_packets()
    assert len(packets) == 10
    for response, request in zip(packets[0::2], packets[1::2]):
        assert response.type == PacketType.RESPONSE
        assert request.type == PacketType.REQUEST
        assert response.device_address == request.device_address


def test_same_seed_gives_same_values(make_bus) -> None:
    values = []
    for _ in range(2):
        bus = make_bus(seed=99)
        asyncio.run(bus.connect("COM1"))
        values.append(asyncio.run(bus.read(holding_read(quantity=5))).values)
    assert values[0] == values[1]


def test_clear_packets(open_bus: ModbusBus) -> None:
    asyncio.run(open_bus.read(holding_read()))
    assert open_bus.clear_packets() == 2
    assert open_bus.list_packets() == []


def test_journal_records_bus_events(make_config, tmp_path) -> None:
    journal_file = tmp_path / "modbus.log"
    bus = ModbusBus(make_config(), journal=EventJournal(str(journal_file)))

    async def session():
        await bus.connect("COM3")
        await bus.read(holding_read(quantity=2))
        await bus.write(1, 0, 5)
        await bus.shutdown()

    asyncio.run(session())

    events = [json.loads(line) for line in journal_file.read_text().splitlines()]
    assert [e["type"] for e in events] == ["connect", "read", "write", "disconnect"]
    assert events[0]["port"] == "COM3"
    assert events[0]["baudRate"] == 9600
    assert len(events[1]["data"]) == 2
    assert events[2]["value"] == 5
    assert all("timestamp" in e for e in events)


def test_bus_serializes_across_event_loops(open_bus: ModbusBus) -> None:
    async def burst():
        await asyncio.gather(*(open_bus.read(holding_read(address=i)) for i in range(3)))

    asyncio.run(burst())
    asyncio.run(burst())

    assert len(open_bus.list_packets()) == 12
