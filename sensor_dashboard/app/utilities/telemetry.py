"""
Telemetry and logging utilities for the dashboard backend.

This module provides the main logging interface used throughout the application.
"""

from sensor_dashboard.app.utilities.logging_config import (
    LoggingConfig,
    LoggingManager,
    LogLevel,
    LogFormat,
    LogDestination,
    configure_logging,
    create_json_lines_logger,
    stop_json_lines_logger,
    get_logger as _get_logger,
    logging_manager
)

# Global logger instance
logger = None


def get_logger(name=None):
    """Get a logger instance - wrapper around the logging manager"""
    return _get_logger(name)


def initialize_logging(config=None):
    """Initialize the logging system with optional configuration"""
    global logger

    if config is None:
        config = LoggingConfig(
            level=LogLevel.INFO,
            format_type=LogFormat.JSON_COMPACT,
            enable_console=True,
            console_destination=LogDestination.STDOUT,
            capture_warnings=True
        )

    configure_logging(config)
    logger = get_logger()

    return logger


if logger is None:
    try:
        logger = get_logger()
    except RuntimeError:
        logger = initialize_logging()

__all__ = [
    'logger',
    'get_logger',
    'initialize_logging',
    'create_json_lines_logger',
    'stop_json_lines_logger',
    'LoggingConfig',
    'LoggingManager',
    'LogLevel',
    'LogFormat',
    'LogDestination',
    'configure_logging',
    'logging_manager'
]
