"""
clusterdiag Logging Configuration

Internal logging (what the tool itself is doing: commands run, timeouts,
tracebacks) goes through the standard logging module and stays apart
from the report, which is written by the Reporter to stdout. Console
log output therefore goes to stderr.

Usage:
    from clusterdiag.logging_config import setup_logging
    setup_logging(level=logging.DEBUG, log_file="/tmp/clusterdiag.log")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
import threading

# Thread-safe initialization
_initialized = False
_lock = threading.Lock()

DEFAULT_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
SIMPLE_FORMAT = "%(levelname)s: %(message)s"

LEVEL_COLORS = {
    'DEBUG': '\033[36m',     # Cyan
    'INFO': '\033[32m',      # Green
    'WARNING': '\033[33m',   # Yellow
    'ERROR': '\033[31m',     # Red
    'CRITICAL': '\033[35m',  # Magenta
}
RESET = '\033[0m'


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to log levels for terminal output."""

    def __init__(self, fmt=None, datefmt=None, use_colors=True, stream=None):
        super().__init__(fmt, datefmt)
        stream = stream or sys.stderr
        self.use_colors = use_colors and stream.isatty()

    def format(self, record):
        if self.use_colors and record.levelname in LEVEL_COLORS:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{LEVEL_COLORS[record.levelname]}{record.levelname}{RESET}"
        return super().format(record)


def setup_logging(
    level: int = logging.WARNING,
    log_file: Optional[str] = None,
    log_format: str = SIMPLE_FORMAT,
    use_colors: bool = True,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Console logging level (default WARNING)
        log_file: Optional file that receives DEBUG and above
        log_format: Console message format string
        use_colors: Enable colored output in terminal
        max_bytes: Max log file size before rotation
        backup_count: Number of backup files to keep
    """
    global _initialized

    with _lock:
        if _initialized:
            return

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG if log_file else level)
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ColoredFormatter(log_format, use_colors=use_colors))
        root_logger.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            root_logger.addHandler(file_handler)

        _initialized = True


def reset_logging() -> None:
    """Allow setup_logging() to run again (useful for testing)."""
    global _initialized
    with _lock:
        _initialized = False
