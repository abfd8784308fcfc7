from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from sensor_dashboard.app.config import ConfigManager, Settings, settings as default_settings
from sensor_dashboard.app.core.bus import ModbusBus
from sensor_dashboard.app.core.event_journal import EventJournal
from sensor_dashboard.app.core.packet_log import PacketLog
from sensor_dashboard.app.models.bus_config import SimulationConfig
from sensor_dashboard.app.utilities.telemetry import logger

from sensor_dashboard.app.api.v1.router import combined_router
from sensor_dashboard.app.core.exceptions import setup_exception_handlers


def build_bus(settings: Settings) -> ModbusBus:
    """Create the simulated bus described by ``settings``, including file mirrors and device seeds"""
    config = SimulationConfig.from_settings(settings)

    packet_log = PacketLog(
        capacity=config.packet_log_capacity,
        mirror_path=settings.packet_log_file,
        mirror_max_bytes=settings.data_log_max_bytes,
        mirror_backup_count=settings.data_log_backup_count
    )
    journal = EventJournal(
        settings.event_log_file,
        max_bytes=settings.data_log_max_bytes,
        backup_count=settings.data_log_backup_count
    )

    bus = ModbusBus(config, packet_log=packet_log, journal=journal)
    bus.preload(ConfigManager(settings).load_device_seeds())
    return bus


def create_app(settings: Optional[Settings] = None, bus: Optional[ModbusBus] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    A prebuilt ``bus`` is used as-is (tests inject isolated buses this way);
    otherwise one is built from ``settings`` during startup.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle application startup and shutdown"""
        try:
            logger.info("Initializing simulated Modbus bus...")
            app.state.bus = bus or build_bus(settings)
            logger.info("All services initialized successfully")

            yield

        except Exception as e:
            logger.error(f"Failed to initialize application: {str(e)}")
            raise
        finally:
            logger.info("Shutting down services...")
            running_bus = getattr(app.state, "bus", None)
            if running_bus is not None:
                await running_bus.shutdown()
                app.state.bus = None

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    # Setup exception handlers
    setup_exception_handlers(app)

    # Include routers
    app.include_router(combined_router)

    return app
