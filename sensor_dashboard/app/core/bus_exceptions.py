from pymodbus.exceptions import ConnectionException, ModbusException


# Custom Exception Classes
class BusError(Exception):
    """Base exception for simulated bus operations"""
    def __init__(self, message: str, device_address: int = None, function_code: int = None, address: int = None):
        super().__init__(message)
        self.message = message
        self.device_address = device_address
        self.function_code = function_code
        self.address = address

    def __str__(self):
        return self.message


class NotConnectedError(BusError, ConnectionException):
    """Raised when a transaction is attempted while the bus is not open"""
    def __init__(self, message: str = "Not connected", **kwargs):
        BusError.__init__(self, message, **kwargs)


class UnsupportedFunctionError(BusError):
    """Raised for function codes the simulator does not implement"""
    pass


class BusValidationError(BusError):
    """Raised when a request falls outside Modbus limits"""
    pass


class SimulatedCommunicationError(BusError, ModbusException):
    """Injected transient bus fault; recoverable, never fatal"""
    def __init__(self, message: str = "Simulated communication error", **kwargs):
        BusError.__init__(self, message, **kwargs)


class BusConnectionError(BusError, ConnectionException):
    """Raised when opening the bus fails"""
    def __init__(self, message: str = "Connection error (simulated)", port: str = None, **kwargs):
        BusError.__init__(self, message, **kwargs)
        self.port = port
