import sys
import time
from typing import List

from fastapi import APIRouter, Depends

from sensor_dashboard.app.core.bus import ModbusBus
from sensor_dashboard.app.core.bus_exceptions import BusConnectionError
from sensor_dashboard.app.dependencies import get_bus
from sensor_dashboard.app.models.bus import (
    FUNCTION_CODE_NAMES, SerialParams, TransactionRequest
)
from sensor_dashboard.app.schemas.modbus import (
    ClearLogsResponse,
    ConnectRequest,
    ConnectionResponse,
    FunctionCodeInfo,
    PacketModel,
    ReadRequest,
    ReadResponse,
    ScanResponse,
    StatusResponse,
    WriteRequest,
    WriteResponse
)
from sensor_dashboard.app.utilities.telemetry import logger

router = APIRouter(prefix="/modbus", tags=["modbus"])

MOCK_PORTS = {
    "win32": ["COM1", "COM2", "COM3", "COM4", "COM5"],
    "linux": ["/dev/ttyMCX1", "/dev/ttyMCX2", "/dev/ttyMCX3", "/dev/ttyACM0", "/dev/ttyUSB0"],
    "darwin": ["/dev/tty.usbserial", "/dev/tty.usbmodem1", "/dev/tty.usbmodem2"],
}
GENERIC_PORTS = ["PORT1", "PORT2", "PORT3"]


def mock_ports_for(platform: str) -> List[str]:
    for prefix, ports in MOCK_PORTS.items():
        if platform.startswith(prefix):
            return list(ports)
    return list(GENERIC_PORTS)


@router.post("/connect", response_model=ConnectionResponse, response_model_exclude_none=True)
async def connect_endpoint(request: ConnectRequest, bus: ModbusBus = Depends(get_bus)) -> ConnectionResponse:
    """
    Open the simulated bus on a serial port.

    A failed connection is reported with ``success: false`` rather than an
    HTTP error, matching what the settings page expects.
    """
    serial_params = SerialParams(
        baud_rate=request.baud_rate,
        data_bits=request.data_bits,
        parity=request.parity,
        stop_bits=request.stop_bits
    )

    try:
        await bus.connect(request.port, serial_params)
    except BusConnectionError as e:
        return ConnectionResponse(
            success=False,
            message=f"Failed to connect: {e}",
            is_open=False,
            error=str(e)
        )

    return ConnectionResponse(
        success=True,
        message=f"Connected to {request.port} with baud rate {request.baud_rate} (simulated Modbus RTU)",
        is_open=True
    )


@router.post("/disconnect", response_model=ConnectionResponse, response_model_exclude_none=True)
async def disconnect_endpoint(bus: ModbusBus = Depends(get_bus)) -> ConnectionResponse:
    await bus.disconnect()
    return ConnectionResponse(success=True, message="Disconnected (simulated Modbus RTU)", is_open=False)


@router.get("/status", response_model=StatusResponse)
async def status_endpoint(bus: ModbusBus = Depends(get_bus)) -> StatusResponse:
    status = bus.status()
    return StatusResponse(is_open=status.is_open, port=status.port, state=status.state.value)


@router.post("/read", response_model=ReadResponse, response_model_exclude_none=True)
async def read_endpoint(request: ReadRequest, bus: ModbusBus = Depends(get_bus)) -> ReadResponse:
    """
    Read registers or bits from a simulated slave.

    Injected bus faults still return ``success: true`` with fallback data and
    an ``error`` string; the trace log shows the exception response.
    """
    start_time = time.time()
    result = await bus.read(TransactionRequest(
        function_code=request.function_code,
        device_address=request.slave_id,
        start_address=request.address,
        quantity=request.length
    ))

    logger.debug("Read API completed", extra={
        "slave_id": request.slave_id,
        "function_code": request.function_code,
        "address": request.address,
        "length": request.length,
        "ok": result.ok,
        "duration_ms": int((time.time() - start_time) * 1000)
    })

    return ReadResponse(
        success=True,
        data=result.values,
        address=request.address,
        function_code=request.function_code,
        error=result.error
    )


@router.post("/write", response_model=WriteResponse, response_model_exclude_none=True)
async def write_endpoint(request: WriteRequest, bus: ModbusBus = Depends(get_bus)) -> WriteResponse:
    result = await bus.write(request.slave_id, request.address, request.value)
    return WriteResponse(
        success=True,
        address=request.address,
        value=result.request.value,
        error=result.error
    )


@router.get("/logs", response_model=List[PacketModel])
async def logs_endpoint(bus: ModbusBus = Depends(get_bus)) -> List[dict]:
    """Packet trace, newest first"""
    return [packet.to_dict() for packet in bus.list_packets()]


@router.post("/logs/clear", response_model=ClearLogsResponse)
async def clear_logs_endpoint(bus: ModbusBus = Depends(get_bus)) -> ClearLogsResponse:
    bus.clear_packets()
    return ClearLogsResponse(success=True, message="Logs cleared")


@router.get("/scan", response_model=ScanResponse)
async def scan_endpoint() -> ScanResponse:
    """Serial ports the operator can pick from; names are mocked per host OS"""
    return ScanResponse(success=True, ports=mock_ports_for(sys.platform), platform=sys.platform)


@router.get("/function-codes", response_model=List[FunctionCodeInfo])
async def function_codes_endpoint() -> List[FunctionCodeInfo]:
    return [FunctionCodeInfo(code=int(code), name=name) for code, name in FUNCTION_CODE_NAMES.items()]
