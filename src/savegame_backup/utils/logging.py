"""Logging configuration and the log sink handed to core components."""

import logging
import logging.handlers
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class LogType(str, Enum):
    """Severity of an entry written to a log sink."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LEVELS = {
    LogType.SUCCESS: logging.INFO,
    LogType.WARNING: logging.WARNING,
    LogType.ERROR: logging.ERROR,
}


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        log_to_console: Whether to log to console
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    logger = logging.getLogger("savegame_backup")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class LogSink(ABC):
    """Destination for user-facing log entries.

    Implementations must never raise back into the caller.
    """

    @abstractmethod
    def log(self, message: str, log_type: LogType = LogType.SUCCESS) -> None:
        """Record a message with the given severity."""

    def success(self, message: str) -> None:
        self.log(message, LogType.SUCCESS)

    def warning(self, message: str) -> None:
        self.log(message, LogType.WARNING)

    def error(self, message: str) -> None:
        self.log(message, LogType.ERROR)

class LoggerSink(LogSink):
    """Log sink backed by a standard library logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, context: Optional[Dict[str, str]] = None):
        """Initialize logger sink.

        Args:
            logger: Base logger (defaults to the package logger)
            context: Context dictionary to add to messages
        """
        self.logger = logger or logging.getLogger("savegame_backup")
        self.context = context or {}

    def _format_message(self, message: str) -> str:
        if not self.context:
            return message
        context_str = " | ".join(f"{k}={v}" for k, v in self.context.items())
        return f"[{context_str}] {message}"

    def log(self, message: str, log_type: LogType = LogType.SUCCESS) -> None:
        try:
            self.logger.log(_LEVELS.get(log_type, logging.INFO), self._format_message(message))
        except Exception:
            # Logging never raises into the caller
            pass


class TimedOperation:
    """Context manager for timing operations and logging results."""

    def __init__(self, sink: LogSink, operation_name: str):
        """Initialize timed operation.

        Args:
            sink: Log sink to use
            operation_name: Name of the operation
        """
        self.sink = sink
        self.operation_name = operation_name
        self.start_time = None

    def __enter__(self):
        """Start timing."""
        self.start_time = datetime.now()
        self.sink.success(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Stop timing and log results."""
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()
            if exc_type is None:
                self.sink.success(f"Completed {self.operation_name} in {duration:.2f}s")
            else:
                self.sink.error(f"Failed {self.operation_name} after {duration:.2f}s: {exc_val}")
