"""
Shared Logger

Centralized logging configuration for the application.
"""

import json
import logging
import sys
from collections import deque
from datetime import UTC, datetime


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields
        extra_data = getattr(record, "extra_data", None)
        if extra_data is not None:
            log_data["extra"] = extra_data

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored console log formatter."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format with colors."""
        color = self.COLORS.get(record.levelname, self.RESET)
        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class RecentLogBuffer(logging.Handler):
    """
    Bounded in-memory tail of log records.

    Keeps WARNING and above (every level when capture_debug is set). The tail is
    attached to operator escalations and the running count is reported by the
    status probe.
    """

    def __init__(self, capacity: int = 100, capture_debug: bool = False):
        super().__init__(level=logging.DEBUG)
        self.capacity = capacity
        self.capture_debug = capture_debug
        self._records: deque[dict[str, str]] = deque(maxlen=capacity)
        self.total_count = 0

    def emit(self, record: logging.LogRecord) -> None:
        self.total_count += 1
        if record.levelno < logging.WARNING and not self.capture_debug:
            return
        self._records.append(
            {
                "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
                "level": record.levelname,
                "message": record.getMessage(),
            }
        )

    def recent(self, count: int = 50) -> list[dict[str, str]]:
        """Return the last `count` buffered records, oldest first."""
        if count <= 0:
            return []
        return list(self._records)[-count:]

    def clear(self) -> None:
        self._records.clear()
        self.total_count = 0


_recent_log_buffer = RecentLogBuffer()


def get_recent_log_buffer() -> RecentLogBuffer:
    """Process-wide buffer installed on the root logger by setup_logging()."""
    return _recent_log_buffer


def setup_logging(
    level: str = "INFO",
    production: bool = False,
    buffer_capacity: int = 100,
    log_file: str | None = None,
) -> RecentLogBuffer:
    """
    Configure application logging.

    Production logs JSON and only shows WARNING and above on the console;
    development uses the colored formatter at the requested level.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        production: Whether the process runs in production mode
        buffer_capacity: Records kept by the recent-log buffer
        log_file: Optional file path for file logging

    Returns:
        The recent-log buffer attached to the root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    # the buffer always sees WARNING+, console handlers filter on their own
    root_logger.setLevel(min(numeric_level, logging.WARNING))

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if production:
        console_handler.setLevel(max(numeric_level, logging.WARNING))
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            ColoredFormatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root_logger.addHandler(console_handler)

    buffer = get_recent_log_buffer()
    buffer.capacity = buffer_capacity
    buffer._records = deque(buffer._records, maxlen=buffer_capacity)
    buffer.capture_debug = numeric_level <= logging.DEBUG
    root_logger.addHandler(buffer)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    return buffer

