import uvicorn

from sensor_dashboard.app.config import settings
from sensor_dashboard.app.api.v1.main import create_app
from sensor_dashboard.app.utilities.telemetry import LoggingConfig, initialize_logging


def main():
    initialize_logging(LoggingConfig(
        level=settings.log_level,
        format_type=settings.log_format,
        log_file_path=settings.log_file_path
    ))
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
