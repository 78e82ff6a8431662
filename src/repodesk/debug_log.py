"""In-memory capture of log records for an in-app log viewer."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

MAX_LOG_LINES = 2000


@dataclass(slots=True)
class LogEntry:
    """A captured log record."""

    level: str
    logger: str
    message: str
    timestamp: float


log_buffer: deque[LogEntry] = deque(maxlen=MAX_LOG_LINES)

# Incremented on clear so viewers can detect a reset buffer
_buffer_generation: int = 0


class DebugLogHandler(logging.Handler):
    """Logging handler that appends records to the ring buffer."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            log_buffer.append(
                LogEntry(
                    level=record.levelname,
                    logger=record.name,
                    message=self.format(record),
                    timestamp=record.created,
                )
            )
        except Exception:
            self.handleError(record)


_handler: DebugLogHandler | None = None


def setup_debug_logging(level: int = logging.INFO) -> DebugLogHandler:
    """Attach the capture handler to the ``repodesk`` logger.

    Idempotent: later calls only adjust the level.
    """
    global _handler

    logger = logging.getLogger("repodesk")
    logger.setLevel(level)
    if _handler is None:
        _handler = DebugLogHandler()
        _handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(_handler)
        logger.debug("Debug logging initialized")
    return _handler


def recent_entries(limit: int = 50, *, min_level: int = logging.NOTSET) -> list[LogEntry]:
    """Return the newest ``limit`` entries at or above ``min_level``."""
    entries = [
        entry
        for entry in log_buffer
        if logging.getLevelName(entry.level) >= min_level
    ]
    return entries[-limit:] if limit > 0 else []


def clear_log_buffer() -> None:
    global _buffer_generation
    log_buffer.clear()
    _buffer_generation += 1


def get_buffer_generation() -> int:
    return _buffer_generation
