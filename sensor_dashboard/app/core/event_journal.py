from datetime import datetime, timezone
from typing import Optional

from sensor_dashboard.app.utilities.telemetry import create_json_lines_logger, logger, stop_json_lines_logger


class EventJournal:
    """Append-only JSON-lines record of bus events (connect, read, write_error, ...)"""

    def __init__(self, file_path: Optional[str] = None, max_bytes: int = 5 * 1024 * 1024, backup_count: int = 1):
        self.file_path = file_path
        self._journal = None
        self._listener = None

        if file_path:
            try:
                self._journal, self._listener = create_json_lines_logger("events", file_path, max_bytes, backup_count)
            except OSError as e:
                logger.warning("Event journal disabled", extra={
                    "component": "event_journal",
                    "path": file_path,
                    "error": str(e)
                })

    @property
    def enabled(self) -> bool:
        return self._journal is not None

    def record(self, event_type: str, **fields) -> None:
        if self._journal is None:
            return
        payload = {"type": event_type, **fields, "timestamp": datetime.now(timezone.utc).isoformat()}
        self._journal.info(event_type, extra={"payload": payload})

    def close(self) -> None:
        if self._listener is not None:
            stop_json_lines_logger(self._listener)
            self._listener = None
            self._journal = None
