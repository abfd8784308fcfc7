import logging
import logging.handlers
import itertools
import json
import queue
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple, Union
from enum import Enum


class LogLevel(Enum):
    """Enumeration for log levels"""
    CRITICAL = logging.CRITICAL
    ERROR = logging.ERROR
    WARNING = logging.WARNING
    INFO = logging.INFO
    DEBUG = logging.DEBUG

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        return cls[name.upper()]


class LogFormat(Enum):
    """Enumeration for log output formats"""
    JSON_COMPACT = "json_compact"
    JSON_PRETTY = "json_pretty"
    STANDARD = "standard"
    DETAILED = "detailed"


class LogDestination(Enum):
    """Enumeration for log destinations"""
    STDOUT = "stdout"
    STDERR = "stderr"


# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', (), None)).keys())
_RESERVED.update(['getMessage', 'exc_text', 'stack_info', 'message', 'asctime', 'taskName'])


def _utc_timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _record_extras(record: logging.LogRecord) -> Dict:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED and not key.startswith('_')
    }


class JsonFormatter(logging.Formatter):
    """Compact JSON formatter - single line output"""

    indent: Optional[int] = None

    def format(self, record):
        log_record = {
            "timestamp": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        extras = _record_extras(record)
        if extras:
            log_record["extra"] = extras

        if self.indent is None:
            return json.dumps(log_record, ensure_ascii=False, separators=(',', ':'), default=str)
        return json.dumps(log_record, ensure_ascii=False, indent=self.indent, default=str)


class JsonPrettyFormatter(JsonFormatter):
    """Pretty-printed JSON formatter - multi-line indented output"""

    indent = 2


class StandardFormatter(logging.Formatter):
    """Standard text formatter"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


class DetailedFormatter(logging.Formatter):
    """Detailed text formatter with more context"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


class PayloadJsonFormatter(logging.Formatter):
    """
    Formatter for JSON-lines data files.

    Emits the record's ``payload`` extra verbatim as one JSON object per line,
    so the file holds data records rather than log messages.
    """

    def format(self, record):
        payload = getattr(record, "payload", None)
        if payload is None:
            payload = {"message": record.getMessage(), "timestamp": _utc_timestamp(record.created)}
        return json.dumps(payload, ensure_ascii=False, separators=(',', ':'), default=str)


class BestEffortRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Rotating file handler that reports write failures as a warning instead of a traceback"""

    def handleError(self, record):
        logging.getLogger(LoggingConfig.DEFAULT_LOGGER_NAME).warning(
            "Failed to persist record to file", extra={
                "component": "file_mirror",
                "file": self.baseFilename,
                "error": str(sys.exc_info()[1])
            })


class LoggingConfig:
    """Configuration class for logging setup"""

    DEFAULT_LOGGER_NAME = "sensor_dashboard"

    def __init__(
        self,
        level: Union[LogLevel, str] = LogLevel.INFO,
        format_type: Union[LogFormat, str] = LogFormat.JSON_COMPACT,
        logger_name: str = DEFAULT_LOGGER_NAME,
        enable_console: bool = True,
        console_destination: Union[LogDestination, str] = LogDestination.STDOUT,
        # File logging options
        log_file_path: Optional[str] = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        capture_warnings: bool = True,
    ):
        self.level = LogLevel.from_name(level) if isinstance(level, str) else level
        self.format_type = LogFormat(format_type) if isinstance(format_type, str) else format_type
        self.logger_name = logger_name
        self.enable_console = enable_console
        self.console_destination = LogDestination(console_destination) if isinstance(console_destination, str) else console_destination

        self.log_file_path = log_file_path
        self.max_file_size = max_file_size
        self.backup_count = backup_count

        self.capture_warnings = capture_warnings


class LoggingManager:
    """Central logging manager for the dashboard backend"""

    def __init__(self):
        self._loggers: Dict[str, logging.Logger] = {}
        self._config: Optional[LoggingConfig] = None
        self._is_configured = False

    def configure(self, config: LoggingConfig) -> None:
        """Configure the logging system"""
        self._config = config

        if config.capture_warnings:
            logging.captureWarnings(True)

        logger = logging.getLogger(config.logger_name)
        logger.setLevel(config.level.value)

        # Clear existing handlers for clean setup
        logger.handlers.clear()
        logger.propagate = False

        handlers = []
        if config.enable_console:
            handlers.append(self._create_console_handler(config))
        if config.log_file_path:
            handlers.append(self._create_file_handler(config))

        for handler in handlers:
            logger.addHandler(handler)

        self._loggers[config.logger_name] = logger
        self._is_configured = True

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger instance"""
        if not self._is_configured:
            raise RuntimeError("Logging not configured. Call configure() first.")

        logger_name = name or self._config.logger_name
        if logger_name not in self._loggers:
            # Dotted names below the main logger inherit its handlers
            if not logger_name.startswith(self._config.logger_name + "."):
                logger_name = f"{self._config.logger_name}.{logger_name}"
            self._loggers[logger_name] = logging.getLogger(logger_name)

        return self._loggers[logger_name]

    def _create_console_handler(self, config: LoggingConfig) -> logging.Handler:
        """Create console handler based on configuration"""
        if config.console_destination == LogDestination.STDOUT:
            handler = logging.StreamHandler(sys.stdout)
        else:
            handler = logging.StreamHandler(sys.stderr)

        handler.setLevel(config.level.value)
        handler.setFormatter(self._create_formatter(config.format_type))
        return handler

    def _create_file_handler(self, config: LoggingConfig) -> logging.Handler:
        """Create rotating file handler based on configuration"""
        file_path = Path(config.log_file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count
        )

        handler.setLevel(config.level.value)
        handler.setFormatter(self._create_formatter(config.format_type))
        return handler

    def _create_formatter(self, format_type: LogFormat) -> logging.Formatter:
        """Create formatter based on format type"""
        if format_type == LogFormat.JSON_PRETTY:
            return JsonPrettyFormatter()
        elif format_type == LogFormat.STANDARD:
            return StandardFormatter()
        elif format_type == LogFormat.DETAILED:
            return DetailedFormatter()
        return JsonFormatter()


_data_logger_ids = itertools.count(1)


def create_json_lines_logger(
    name: str,
    file_path: str,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 1,
) -> Tuple[logging.Logger, logging.handlers.QueueListener]:
    """
    Create a logger that appends ``payload`` extras to a JSON-lines file.

    Records are handed to a queue and written by a listener thread, so callers
    never block on disk. The caller owns the returned listener and must stop it.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = BestEffortRotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        delay=True
    )
    file_handler.setFormatter(PayloadJsonFormatter())

    record_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(-1)
    listener = logging.handlers.QueueListener(record_queue, file_handler)

    # One logger per call so separate owners never share a queue or file
    data_logger = logging.getLogger(f"{LoggingConfig.DEFAULT_LOGGER_NAME}.data.{name}.{next(_data_logger_ids)}")
    data_logger.addHandler(logging.handlers.QueueHandler(record_queue))
    data_logger.setLevel(logging.INFO)
    data_logger.propagate = False

    listener.start()
    return data_logger, listener


def stop_json_lines_logger(listener: logging.handlers.QueueListener) -> None:
    """Drain pending records and close the file behind a JSON-lines logger"""
    listener.stop()
    for handler in listener.handlers:
        handler.close()


# Global logging manager instance
logging_manager = LoggingManager()


def configure_logging(config: LoggingConfig) -> None:
    """Configure the global logging system"""
    logging_manager.configure(config)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance"""
    return logging_manager.get_logger(name)


# Initialize with basic configuration for immediate use
try:
    configure_logging(LoggingConfig(
        level=LogLevel.INFO,
        format_type=LogFormat.JSON_COMPACT,
        enable_console=True
    ))
except Exception:
    _fallback = logging.getLogger(LoggingConfig.DEFAULT_LOGGER_NAME)
    _fallback_handler = logging.StreamHandler(sys.stdout)
    _fallback_handler.setFormatter(JsonFormatter())
    _fallback.addHandler(_fallback_handler)
    _fallback.setLevel(logging.INFO)
