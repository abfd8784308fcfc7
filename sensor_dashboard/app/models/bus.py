from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Union


class ConnectionState(Enum):
    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"
    ERROR = "error"


class PacketType(Enum):
    REQUEST = "request"
    RESPONSE = "response"


class FunctionCode(IntEnum):
    READ_COILS = 1
    READ_DISCRETE_INPUTS = 2
    READ_HOLDING_REGISTERS = 3
    READ_INPUT_REGISTERS = 4
    WRITE_SINGLE_COIL = 5
    WRITE_SINGLE_REGISTER = 6
    WRITE_MULTIPLE_COILS = 15
    WRITE_MULTIPLE_REGISTERS = 16


FUNCTION_CODE_NAMES: Dict[int, str] = {
    FunctionCode.READ_COILS: "Read Coil Status",
    FunctionCode.READ_DISCRETE_INPUTS: "Read Input Status",
    FunctionCode.READ_HOLDING_REGISTERS: "Read Holding Registers",
    FunctionCode.READ_INPUT_REGISTERS: "Read Input Registers",
    FunctionCode.WRITE_SINGLE_COIL: "Write Single Coil",
    FunctionCode.WRITE_SINGLE_REGISTER: "Write Single Register",
    FunctionCode.WRITE_MULTIPLE_COILS: "Write Multiple Coils",
    FunctionCode.WRITE_MULTIPLE_REGISTERS: "Write Multiple Registers",
}

BIT_READ_CODES = (FunctionCode.READ_COILS, FunctionCode.READ_DISCRETE_INPUTS)
REGISTER_READ_CODES = (FunctionCode.READ_HOLDING_REGISTERS, FunctionCode.READ_INPUT_REGISTERS)
READ_CODES = BIT_READ_CODES + REGISTER_READ_CODES
IMPLEMENTED_CODES = READ_CODES + (FunctionCode.WRITE_SINGLE_REGISTER,)

EXCEPTION_FLAG = 0x80
SERVER_DEVICE_FAILURE = 0x04


def describe_function_code(code: int) -> str:
    """Human readable name of a function code, including exception responses"""
    if code in FUNCTION_CODE_NAMES:
        return FUNCTION_CODE_NAMES[code]
    if EXCEPTION_FLAG <= code <= 0x8F:
        return f"Error({code - EXCEPTION_FLAG})"
    return f"Unknown Function({code})"


@dataclass
class SerialParams:
    """Serial line parameters recorded on connect"""
    baud_rate: int = 9600
    data_bits: int = 8
    parity: str = "none"
    stop_bits: int = 1


@dataclass
class ConnectionStatus:
    state: ConnectionState
    port: Optional[str] = None
    serial_params: Optional[SerialParams] = None
    last_error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN


@dataclass
class TransactionRequest:
    """
    A single logical Modbus operation.

    ``quantity`` applies to reads, ``value`` to single-register writes.
    """
    function_code: int
    device_address: int
    start_address: int
    quantity: int = 1
    value: Optional[int] = None

    @property
    def is_write(self) -> bool:
        return self.function_code == FunctionCode.WRITE_SINGLE_REGISTER


@dataclass
class TransactionOutcome:
    ok: bool
    values: List[Union[int, bool]] = field(default_factory=list)
    reason: Optional[str] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, values: List[Union[int, bool]]) -> "TransactionOutcome":
        return cls(ok=True, values=values)

    @classmethod
    def failure(cls, error: Exception) -> "TransactionOutcome":
        return cls(ok=False, reason=str(error), error=error)


@dataclass(frozen=True)
class Packet:
    """One framed request or response as it appears in the trace log"""
    id: int
    timestamp: str
    type: PacketType
    device_address: int
    function_code: int
    data: str
    crc: str
    raw: str
    is_valid: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Packet in the camelCase shape the trace view consumes"""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type.value,
            "deviceAddress": self.device_address,
            "functionCode": self.function_code,
            "data": self.data,
            "crc": self.crc,
            "raw": self.raw,
            "isValid": self.is_valid,
        }


@dataclass
class TransactionResult:
    """What the bus hands back to a caller after a read or write"""
    request: TransactionRequest
    ok: bool
    values: List[Union[int, bool]]
    error: Optional[str] = None
    packets: List[Packet] = field(default_factory=list)
