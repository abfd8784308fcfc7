from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import time

from sensor_dashboard.app.core.bus_exceptions import (
    BusError, BusConnectionError, BusValidationError, NotConnectedError,
    SimulatedCommunicationError, UnsupportedFunctionError
)
from sensor_dashboard.app.utilities.telemetry import logger

from sensor_dashboard.app.schemas.common import ErrorDetail, ErrorResponse


def setup_exception_handlers(app: FastAPI):
    """Setup custom exception handlers for the FastAPI app"""

    @app.exception_handler(BusError)
    async def bus_exception_handler(request: Request, exc: BusError):
        """Handle simulated bus exceptions with appropriate HTTP status codes"""

        # Map exception types to HTTP status codes
        status_code_map = {
            NotConnectedError: status.HTTP_400_BAD_REQUEST,
            UnsupportedFunctionError: status.HTTP_400_BAD_REQUEST,
            BusValidationError: status.HTTP_400_BAD_REQUEST,
            BusConnectionError: status.HTTP_503_SERVICE_UNAVAILABLE,
            SimulatedCommunicationError: status.HTTP_503_SERVICE_UNAVAILABLE,
            BusError: status.HTTP_500_INTERNAL_SERVER_ERROR,  # Generic fallback
        }

        status_code = status_code_map.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)

        error_detail = ErrorDetail(
            error_type=type(exc).__name__,
            message=str(exc),
            device_address=exc.device_address,
            function_code=exc.function_code,
            address=exc.address,
            timestamp=time.time()
        )

        logger.warning(f"Bus error: {error_detail.error_type} - {error_detail.message}", extra={
            "error_type": error_detail.error_type,
            "device_address": error_detail.device_address,
            "function_code": error_detail.function_code,
            "address": error_detail.address,
            "request_path": request.url.path,
            "status_code": status_code
        })

        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(message=str(exc), detail=error_detail).model_dump(by_alias=True)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as plain 400 client errors"""
        errors = jsonable_encoder(exc.errors())
        fields = [".".join(str(part) for part in error.get("loc", ()) if part != "body") for error in errors]
        message = f"Invalid request: {', '.join(field for field in fields if field) or 'body'}"

        error_detail = ErrorDetail(
            error_type="ValidationError",
            message=message,
            timestamp=time.time()
        )

        logger.info(message, extra={
            "request_path": request.url.path,
            "request_method": request.method
        })

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(message=message, detail=error_detail, errors=errors).model_dump(by_alias=True)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions gracefully"""
        error_detail = ErrorDetail(
            error_type="InternalServerError",
            message="An unexpected error occurred",
            timestamp=time.time()
        )

        logger.error(f"Unexpected error: {str(exc)}", extra={
            "error": str(exc),
            "request_path": request.url.path,
            "request_method": request.method
        }, exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(message=error_detail.message, detail=error_detail).model_dump(by_alias=True)
        )
