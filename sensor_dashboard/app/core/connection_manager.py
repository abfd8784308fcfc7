import asyncio
from datetime import datetime
from typing import Optional

from sensor_dashboard.app.core.bus_exceptions import BusConnectionError, NotConnectedError
from sensor_dashboard.app.models.bus import ConnectionState, ConnectionStatus, SerialParams
from sensor_dashboard.app.models.bus_config import SimulationConfig
from sensor_dashboard.app.utilities.telemetry import logger


class ConnectionManager:
    """Lifecycle of the simulated serial connection: closed -> connecting -> open -> closed/error"""

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.state = ConnectionState.CLOSED
        self.port: Optional[str] = None
        self.serial_params: Optional[SerialParams] = None
        self.last_error: Optional[str] = None
        self.opened_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state == ConnectionState.OPEN

    async def connect(self, port: str, serial_params: Optional[SerialParams] = None) -> ConnectionStatus:
        """Open the bus on ``port``; raises BusConnectionError for the invalid port sentinel"""
        if self.is_open:
            logger.info("Closing existing connection before reconnect", extra={
                "component": "connection_manager",
                "port": self.port,
                "new_port": port
            })
            await self.disconnect()

        self.state = ConnectionState.CONNECTING
        logger.debug("Connecting", extra={
            "component": "connection_manager",
            "port": port,
            "delay_ms": self.config.connect_delay_ms
        })
        await asyncio.sleep(self.config.connect_delay_ms / 1000)

        if port == self.config.invalid_port:
            self.state = ConnectionState.ERROR
            self.port = None
            self.last_error = "Connection error (simulated)"
            logger.warning("Connection failed", extra={
                "component": "connection_manager",
                "port": port,
                "error": self.last_error
            })
            raise BusConnectionError(self.last_error, port=port)

        self.state = ConnectionState.OPEN
        self.port = port
        self.serial_params = serial_params or SerialParams()
        self.last_error = None
        self.opened_at = datetime.now()

        logger.info("Connection open", extra={
            "component": "connection_manager",
            "port": port,
            "baud_rate": self.serial_params.baud_rate,
            "data_bits": self.serial_params.data_bits,
            "parity": self.serial_params.parity,
            "stop_bits": self.serial_params.stop_bits
        })
        return self.status()

    async def disconnect(self) -> ConnectionStatus:
        """Close the bus; closing an already closed bus is a no-op that still succeeds"""
        await asyncio.sleep(self.config.disconnect_delay_ms / 1000)

        previous_state = self.state
        self.state = ConnectionState.CLOSED
        self.port = None
        self.serial_params = None
        self.opened_at = None

        logger.info("Connection closed", extra={
            "component": "connection_manager",
            "previous_state": previous_state.value
        })
        return self.status()

    def status(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self.state,
            port=self.port,
            serial_params=self.serial_params,
            last_error=self.last_error
        )

    def ensure_open(self) -> None:
        if not self.is_open:
            raise NotConnectedError()
