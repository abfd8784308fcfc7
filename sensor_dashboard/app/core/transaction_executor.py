import asyncio
import random
from typing import List, Optional, Union

from sensor_dashboard.app.core.bus_exceptions import (
    BusValidationError, SimulatedCommunicationError, UnsupportedFunctionError
)
from sensor_dashboard.app.core.connection_manager import ConnectionManager
from sensor_dashboard.app.core.register_store import RegisterStore, UINT16_MAX, clamp_uint16
from sensor_dashboard.app.models.bus import (
    BIT_READ_CODES, IMPLEMENTED_CODES, FunctionCode, TransactionOutcome, TransactionRequest
)
from sensor_dashboard.app.models.bus_config import SimulationConfig
from sensor_dashboard.app.utilities.telemetry import logger

# Modbus limits that keep the response byte count within a single byte
MAX_REGISTER_QUANTITY = 125
MAX_BIT_QUANTITY = 2000


class TransactionExecutor:
    """Runs one Modbus operation against the register store with simulated wire delay and faults"""

    def __init__(
        self,
        connection: ConnectionManager,
        registers: RegisterStore,
        config: SimulationConfig,
        rng: Optional[random.Random] = None,
    ):
        self.connection = connection
        self.registers = registers
        self.config = config
        self._rng = rng or random.Random()
        self.latency_ms = min(config.default_latency_ms, config.max_latency_ms)

    def set_timeout(self, timeout_ms: float) -> None:
        """Record the response timeout; it caps the simulated latency"""
        self.latency_ms = min(timeout_ms, self.config.max_latency_ms)

    def validate(self, request: TransactionRequest) -> None:
        """Gate and sanity-check a request before anything is put on the wire"""
        self.connection.ensure_open()
        context = {
            "device_address": request.device_address,
            "function_code": request.function_code,
            "address": request.start_address
        }

        if request.function_code not in IMPLEMENTED_CODES:
            raise UnsupportedFunctionError(
                f"Unsupported function code: {request.function_code}", **context
            )

        if not 0 <= request.start_address <= UINT16_MAX:
            raise BusValidationError(f"Address out of range: {request.start_address}", **context)

        if request.is_write:
            if request.value is None:
                raise BusValidationError("Write request without a value", **context)
            return

        limit = MAX_BIT_QUANTITY if request.function_code in BIT_READ_CODES else MAX_REGISTER_QUANTITY
        if not 1 <= request.quantity <= limit:
            raise BusValidationError(
                f"Quantity must be between 1 and {limit}, got {request.quantity}", **context
            )
        if request.start_address + request.quantity - 1 > UINT16_MAX:
            raise BusValidationError("Read extends past the end of the address space", **context)

    async def execute(self, request: TransactionRequest) -> TransactionOutcome:
        """
        Perform ``request`` after the simulated latency.

        Raises NotConnectedError and UnsupportedFunctionError for caller mistakes.
        Injected bus faults come back as a failed outcome and leave the store untouched.
        """
        self.validate(request)

        await asyncio.sleep(self.latency_ms / 1000)

        if self._rng.random() < self.config.failure_probability:
            error = SimulatedCommunicationError(
                device_address=request.device_address,
                function_code=request.function_code,
                address=request.start_address
            )
            logger.warning("Simulated communication error", extra={
                "component": "transaction_executor",
                "device_address": request.device_address,
                "function_code": request.function_code,
                "address": request.start_address
            })
            return TransactionOutcome.failure(error)

        values = self._dispatch(request)
        logger.debug("Transaction completed", extra={
            "component": "transaction_executor",
            "device_address": request.device_address,
            "function_code": request.function_code,
            "address": request.start_address,
            "value_count": len(values)
        })
        return TransactionOutcome.success(values)

    def fallback_values(self, request: TransactionRequest) -> List[Union[int, bool]]:
        """Best-effort values for a failed transaction, read without drift"""
        code = request.function_code
        if code in BIT_READ_CODES:
            return self._bit_pattern(code, request.start_address, request.quantity)
        if code == FunctionCode.READ_HOLDING_REGISTERS:
            return self.registers.peek_registers(request.device_address, request.start_address, request.quantity)
        if code == FunctionCode.READ_INPUT_REGISTERS:
            return self.registers.peek_registers(
                request.device_address, request.start_address + self.config.input_register_offset, request.quantity
            )
        return [clamp_uint16(request.value)]

    def _dispatch(self, request: TransactionRequest) -> List[Union[int, bool]]:
        code = request.function_code
        if code in BIT_READ_CODES:
            return self._bit_pattern(code, request.start_address, request.quantity)
        if code == FunctionCode.READ_HOLDING_REGISTERS:
            return self.registers.read_registers(request.device_address, request.start_address, request.quantity)
        if code == FunctionCode.READ_INPUT_REGISTERS:
            return self.registers.read_registers(
                request.device_address, request.start_address + self.config.input_register_offset, request.quantity
            )
        if code == FunctionCode.WRITE_SINGLE_REGISTER:
            return [self.registers.write_register(request.device_address, request.start_address, request.value)]
        raise UnsupportedFunctionError(f"Unsupported function code: {code}", function_code=code)

    @staticmethod
    def _bit_pattern(code: int, address: int, quantity: int) -> List[bool]:
        modulus = 3 if code == FunctionCode.READ_COILS else 2
        return [(address + i) % modulus == 0 for i in range(quantity)]
