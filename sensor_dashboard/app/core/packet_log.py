import threading
from collections import deque
from typing import List, Optional

from sensor_dashboard.app.models.bus import Packet
from sensor_dashboard.app.utilities.telemetry import create_json_lines_logger, logger, stop_json_lines_logger

DEFAULT_CAPACITY = 100


class PacketLog:
    """
    Bounded trace of framed packets, newest first.

    When ``mirror_path`` is set every appended packet is also written as a
    JSON line to a size-capped file. The write goes through a queue, so a slow
    or failing disk never fails the append.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        mirror_path: Optional[str] = None,
        mirror_max_bytes: int = 5 * 1024 * 1024,
        mirror_backup_count: int = 1,
    ):
        if capacity < 1:
            raise ValueError("Packet log capacity must be at least 1")
        self.capacity = capacity
        self._packets: deque = deque()
        self._lock = threading.Lock()
        self._mirror = None
        self._mirror_listener = None

        if mirror_path:
            try:
                self._mirror, self._mirror_listener = create_json_lines_logger(
                    "packets", mirror_path, mirror_max_bytes, mirror_backup_count
                )
            except OSError as e:
                logger.warning("Packet log mirror disabled", extra={
                    "component": "packet_log",
                    "path": mirror_path,
                    "error": str(e)
                })

    def append(self, packet: Packet) -> None:
        with self._lock:
            self._packets.appendleft(packet)
            while len(self._packets) > self.capacity:
                self._packets.pop()

        if self._mirror is not None:
            self._mirror.info("packet", extra={"payload": packet.to_dict()})

    def list(self) -> List[Packet]:
        with self._lock:
            return list(self._packets)

    def clear(self) -> int:
        """Drop every packet and return how many were removed"""
        with self._lock:
            removed = len(self._packets)
            self._packets.clear()
        logger.info("Packet log cleared", extra={"component": "packet_log", "removed": removed})
        return removed

    def close(self) -> None:
        if self._mirror_listener is not None:
            stop_json_lines_logger(self._mirror_listener)
            self._mirror_listener = None
            self._mirror = None

    def __len__(self) -> int:
        return len(self._packets)
