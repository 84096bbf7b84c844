"""Utility functions for CircleCall."""

from .logging import (
    CallLogAdapter,
    LogCapture,
    get_call_logger,
    get_logger,
    setup_logging,
)

__all__ = [
    "CallLogAdapter",
    "LogCapture",
    "get_call_logger",
    "get_logger",
    "setup_logging",
]
