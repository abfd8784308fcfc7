import random
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sensor_dashboard.app.models.bus import (
    EXCEPTION_FLAG, SERVER_DEVICE_FAILURE, Packet, PacketType, TransactionRequest, describe_function_code
)
from sensor_dashboard.app.utilities.telemetry import logger

CRC_MODES = ("synthetic", "crc16")


def crc16_modbus(data: bytes) -> int:
    """Calculate Modbus CRC16"""
    crc = 0xFFFF
    for b in data:
        crc ^= b
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc & 0xFFFF


def request_data(request: TransactionRequest) -> str:
    """Request PDU data: start address plus quantity, or address plus value for writes"""
    second = request.value if request.is_write else request.quantity
    return f"{request.start_address:04x}{second:04x}"


def register_response_data(values: Iterable[int]) -> str:
    values = list(values)
    return f"{len(values) * 2:02x}" + "".join(f"{value:04x}" for value in values)


def bit_response_data(bits: List[bool]) -> str:
    """Byte count then the bits packed LSB-first, as coil/discrete input replies are"""
    packed = bytearray((len(bits) + 7) // 8)
    for i, bit in enumerate(bits):
        if bit:
            packed[i // 8] |= 1 << (i % 8)
    return f"{len(packed):02x}" + packed.hex()


def exception_data(exception_code: int = SERVER_DEVICE_FAILURE) -> str:
    return f"{exception_code:02x}"


class PacketFramer:
    """
    Turns transaction parameters into packet records for the trace log.

    The default CRC is a random placeholder for display only. With
    ``crc_mode="crc16"`` the real Modbus CRC is computed and stored low byte
    first, so ``raw`` is a valid RTU frame.
    """

    def __init__(self, rng: Optional[random.Random] = None, crc_mode: str = "synthetic"):
        if crc_mode not in CRC_MODES:
            raise ValueError(f"Unknown CRC mode '{crc_mode}', expected one of {CRC_MODES}")
        self._rng = rng or random.Random()
        self.crc_mode = crc_mode
        self._last_id = 0

    def frame(
        self,
        packet_type: PacketType,
        device_address: int,
        function_code: int,
        data_hex: str,
        is_valid: bool = True,
    ) -> Packet:
        data_hex = data_hex.lower()
        header = f"{device_address:02x}{function_code:02x}"
        crc = self._crc(header + data_hex)

        packet = Packet(
            id=self._next_id(),
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            type=packet_type,
            device_address=device_address,
            function_code=function_code,
            data=data_hex,
            crc=crc,
            raw=header + data_hex + crc,
            is_valid=is_valid
        )

        logger.debug("Packet framed", extra={
            "component": "packet_framer",
            "packet_type": packet_type.value,
            "device_address": device_address,
            "function": describe_function_code(function_code),
            "raw": packet.raw,
            "is_valid": is_valid
        })
        return packet

    def frame_request(self, request: TransactionRequest) -> Packet:
        return self.frame(PacketType.REQUEST, request.device_address, request.function_code, request_data(request))

    def frame_exception(self, request: TransactionRequest, exception_code: int = SERVER_DEVICE_FAILURE) -> Packet:
        return self.frame(
            PacketType.RESPONSE,
            request.device_address,
            request.function_code | EXCEPTION_FLAG,
            exception_data(exception_code),
            is_valid=False
        )

    def _crc(self, frame_hex: str) -> str:
        if self.crc_mode == "crc16":
            crc = crc16_modbus(bytes.fromhex(frame_hex))
            return f"{crc & 0xFF:02x}{crc >> 8:02x}"
        return f"{self._rng.randrange(0x10000):04x}"

    def _next_id(self) -> int:
        # Epoch milliseconds, bumped so ids stay unique within the same millisecond
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return self._last_id
