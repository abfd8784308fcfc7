from pydantic import Field
from typing import List, Literal, Optional, Union

from sensor_dashboard.app.schemas.common import CamelModel


class ConnectRequest(CamelModel):
    port: str = Field(..., min_length=1, description="Serial port to open, e.g. COM1 or /dev/ttyUSB0")
    baud_rate: int = Field(9600, gt=0)
    data_bits: int = Field(8, ge=5, le=8)
    parity: Literal["none", "even", "odd", "mark", "space"] = "none"
    stop_bits: int = Field(1, ge=1, le=2)


class ReadRequest(CamelModel):
    address: int = Field(0, ge=0, le=0xFFFF, description="First register or bit address")
    length: int = Field(1, ge=1, description="Number of registers or bits to read")
    slave_id: int = Field(1, ge=1, le=247)
    function_code: int = Field(3, ge=0, le=255)


class WriteRequest(CamelModel):
    address: int = Field(..., ge=0, le=0xFFFF)
    value: int = Field(..., description="Register value; clamped to 0..65535")
    slave_id: int = Field(1, ge=1, le=247)


class ConnectionResponse(CamelModel):
    success: bool
    message: str
    is_open: bool
    error: Optional[str] = None


class StatusResponse(CamelModel):
    is_open: bool
    port: Optional[str] = None
    state: str


class ReadResponse(CamelModel):
    success: bool
    data: List[Union[bool, int]]
    address: int
    function_code: int
    error: Optional[str] = None


class WriteResponse(CamelModel):
    success: bool
    address: int
    value: int
    error: Optional[str] = None


class PacketModel(CamelModel):
    id: int
    timestamp: str
    type: Literal["request", "response"]
    device_address: int
    function_code: int
    data: str
    crc: str
    raw: str
    is_valid: bool


class ClearLogsResponse(CamelModel):
    success: bool
    message: str


class ScanResponse(CamelModel):
    success: bool
    ports: List[str]
    platform: str


class FunctionCodeInfo(CamelModel):
    code: int
    name: str
