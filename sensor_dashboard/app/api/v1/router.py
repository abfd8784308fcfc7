from fastapi import APIRouter

from sensor_dashboard.app.config import settings
from sensor_dashboard.app.schemas.common import RootResponse
from sensor_dashboard.app.api.v1.modbus import router as modbus_router

# Create main API router
api_router = APIRouter(prefix="/api")

# Include sub-routers
api_router.include_router(modbus_router)


@api_router.get("", response_model=RootResponse)
async def api_root() -> RootResponse:
    """Root endpoint with API information"""
    return RootResponse(message="Sensor Dashboard API is running", version=settings.api_version)


# Add root endpoint at application level (not under /api)
root_router = APIRouter()


@root_router.get("/", response_model=RootResponse)
async def root() -> RootResponse:
    """Root endpoint with API information"""
    return RootResponse(message="Sensor Dashboard backend is running", version=settings.api_version)


# Export combined router
combined_router = APIRouter()
combined_router.include_router(root_router)
combined_router.include_router(api_router)
