import asyncio
import contextlib
import random
import time
from typing import Dict, List, Optional

from sensor_dashboard.app.core.bus_exceptions import UnsupportedFunctionError
from sensor_dashboard.app.core.connection_manager import ConnectionManager
from sensor_dashboard.app.core.event_journal import EventJournal
from sensor_dashboard.app.core.packet_framer import (
    PacketFramer, bit_response_data, register_response_data, request_data
)
from sensor_dashboard.app.core.packet_log import PacketLog
from sensor_dashboard.app.core.register_store import RegisterStore, clamp_uint16
from sensor_dashboard.app.core.transaction_executor import TransactionExecutor
from sensor_dashboard.app.models.bus import (
    BIT_READ_CODES, READ_CODES, ConnectionStatus, FunctionCode, Packet, PacketType, SerialParams,
    TransactionRequest, TransactionResult
)
from sensor_dashboard.app.models.bus_config import SimulationConfig
from sensor_dashboard.app.utilities.telemetry import logger


class ModbusBus:
    """
    One simulated Modbus RTU bus: connection, slave registers, and packet trace.

    Everything a request handler needs hangs off this object, so tests can run
    several isolated buses side by side. Pass a seeded ``random.Random`` to make
    drift, CRCs and fault injection deterministic.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        rng: Optional[random.Random] = None,
        packet_log: Optional[PacketLog] = None,
        journal: Optional[EventJournal] = None,
    ):
        self.config = config or SimulationConfig()
        self.rng = rng or random.Random(self.config.random_seed)

        self.connection = ConnectionManager(self.config)
        self.registers = RegisterStore(self.rng, self.config.seed_register_count, self.config.read_drift)
        self.executor = TransactionExecutor(self.connection, self.registers, self.config, self.rng)
        self.framer = PacketFramer(self.rng, self.config.crc_mode)
        self.packet_log = packet_log or PacketLog(self.config.packet_log_capacity)
        self.journal = journal or EventJournal()

        # Single-master discipline: one operation on the wire at a time
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _serialized(self):
        if not self.config.serialize_transactions:
            return contextlib.nullcontext()
        # asyncio locks belong to one event loop; make a fresh one when the loop changes
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def connect(self, port: str, serial_params: Optional[SerialParams] = None) -> ConnectionStatus:
        serial_params = serial_params or SerialParams()
        async with self._serialized():
            try:
                status = await self.connection.connect(port, serial_params)
            except Exception as e:
                self.journal.record("connect_error", port=port, error=str(e))
                raise

            self.executor.set_timeout(self.config.response_timeout_ms)
            self.journal.record(
                "connect",
                port=port,
                baudRate=serial_params.baud_rate,
                dataBits=serial_params.data_bits,
                parity=serial_params.parity,
                stopBits=serial_params.stop_bits
            )
            return status

    async def disconnect(self) -> ConnectionStatus:
        async with self._serialized():
            status = await self.connection.disconnect()
            self.journal.record("disconnect")
            return status

    def status(self) -> ConnectionStatus:
        return self.connection.status()

    async def read(self, request: TransactionRequest) -> TransactionResult:
        """Read coils, discrete inputs, holding or input registers"""
        if request.function_code not in READ_CODES:
            self.connection.ensure_open()
            raise UnsupportedFunctionError(
                f"Unsupported function code: {request.function_code}",
                device_address=request.device_address,
                function_code=request.function_code,
                address=request.start_address
            )
        return await self._transact(request, "read")

    async def write(self, device_address: int, address: int, value: int) -> TransactionResult:
        """Write a single holding register (function code 6)"""
        request = TransactionRequest(
            function_code=FunctionCode.WRITE_SINGLE_REGISTER,
            device_address=device_address,
            start_address=address,
            value=clamp_uint16(value)
        )
        return await self._transact(request, "write")

    async def _transact(self, request: TransactionRequest, kind: str) -> TransactionResult:
        start_time = time.time()
        async with self._serialized():
            # Client errors surface here, before anything reaches the trace
            self.executor.validate(request)

            request_packet = self.framer.frame_request(request)
            self.packet_log.append(request_packet)

            outcome = await self.executor.execute(request)

            if outcome.ok:
                response_packet = self._frame_response(request, outcome.values)
                self.packet_log.append(response_packet)
                result = TransactionResult(
                    request=request,
                    ok=True,
                    values=outcome.values,
                    packets=[request_packet, response_packet]
                )
            else:
                response_packet = self.framer.frame_exception(request)
                self.packet_log.append(response_packet)
                result = TransactionResult(
                    request=request,
                    ok=False,
                    values=self.executor.fallback_values(request),
                    error=outcome.reason,
                    packets=[request_packet, response_packet]
                )

        self._journal_result(kind, result)
        logger.debug(f"Bus {kind} completed", extra={
            "component": "modbus_bus",
            "device_address": request.device_address,
            "function_code": request.function_code,
            "address": request.start_address,
            "ok": result.ok,
            "duration_ms": int((time.time() - start_time) * 1000)
        })
        return result

    def _frame_response(self, request: TransactionRequest, values: List) -> Packet:
        if request.function_code in BIT_READ_CODES:
            data_hex = bit_response_data(values)
        elif request.is_write:
            data_hex = request_data(request)
        else:
            data_hex = register_response_data(values)
        return self.framer.frame(PacketType.RESPONSE, request.device_address, request.function_code, data_hex)

    def _journal_result(self, kind: str, result: TransactionResult) -> None:
        request = result.request
        fields: Dict = {
            "slaveId": request.device_address,
            "functionCode": request.function_code,
            "address": request.start_address,
        }
        if request.is_write:
            fields["value"] = request.value
        else:
            fields["length"] = request.quantity

        if result.ok:
            if not request.is_write:
                fields["data"] = result.values
            self.journal.record(kind, **fields)
        else:
            fields["error"] = result.error
            if not request.is_write:
                fields["fallbackData"] = result.values
            self.journal.record(f"{kind}_error", **fields)

    def list_packets(self) -> List[Packet]:
        return self.packet_log.list()

    def clear_packets(self) -> int:
        return self.packet_log.clear()

    def preload(self, device_seeds: Dict[int, Dict[int, int]]) -> None:
        for device_address, registers in device_seeds.items():
            self.registers.preload(device_address, registers)

    async def shutdown(self) -> None:
        """Close the connection and flush file mirrors"""
        if self.connection.is_open:
            await self.disconnect()
        self.packet_log.close()
        self.journal.close()
