"""Logging configuration for CircleCall."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"
LOG_DATE_FORMAT = "[%X]"

LOG_DIR = Path.home() / ".circlecall" / "logs"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False,
) -> logging.Logger:
    """Set up logging with Rich handler for console output.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file
        verbose: Enable verbose/debug output

    Returns:
        Configured logger instance
    """
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger("circlecall")
    logger.setLevel(level)
    logger.handlers.clear()

    console = Console(stderr=True)
    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always log debug to file
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (will be prefixed with 'circlecall.')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"circlecall.{name}")
    return logging.getLogger("circlecall")


class CallLogAdapter(logging.LoggerAdapter):
    """Tags every message with the call it concerns.

    The call id is prefixed to the message and kept on the record as
    `call_id`, so captured records can be filtered per call.
    """

    def process(self, msg, kwargs):
        call_id = self.extra["call_id"]
        kwargs.setdefault("extra", {})["call_id"] = call_id
        return f"[call {call_id}] {msg}", kwargs


def get_call_logger(call_id: str, name: str = "calls") -> CallLogAdapter:
    """Get a logger for transitions on one call.

    Args:
        call_id: Call the messages belong to
        name: Logger name under the package logger

    Returns:
        Adapter tagging messages with the call id
    """
    return CallLogAdapter(get_logger(name), {"call_id": call_id})


class LogCapture:
    """Context manager to capture log messages (useful for testing)."""

    def __init__(self, logger_name: str = "circlecall"):
        self.logger_name = logger_name
        self.records: list[logging.LogRecord] = []
        self._handler: Optional[logging.Handler] = None
        self._previous_level: Optional[int] = None

    def __enter__(self) -> "LogCapture":
        logger = logging.getLogger(self.logger_name)
        self._handler = CaptureHandler(self.records)
        self._previous_level = logger.level
        if logger.getEffectiveLevel() > logging.DEBUG:
            logger.setLevel(logging.DEBUG)
        logger.addHandler(self._handler)
        return self

    def __exit__(self, *args) -> None:
        logger = logging.getLogger(self.logger_name)
        if self._handler:
            logger.removeHandler(self._handler)
        if self._previous_level is not None:
            logger.setLevel(self._previous_level)

    @property
    def messages(self) -> list[str]:
        """Get captured log messages."""
        return [record.getMessage() for record in self.records]

    def has_message(self, substring: str) -> bool:
        """Check if any captured message contains the substring."""
        return any(substring in msg for msg in self.messages)

    def for_call(self, call_id: str) -> list[str]:
        """Messages logged through a call logger for the given call."""
        return [
            record.getMessage()
            for record in self.records
            if getattr(record, "call_id", None) == call_id
        ]


class CaptureHandler(logging.Handler):
    """Handler that captures log records to a list."""

    def __init__(self, records: list[logging.LogRecord]):
        super().__init__()
        self.records = records

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)
