"""Utilities module for Barricade."""

from .logging_config import setup_logging, get_logger
from .exceptions import (
    BarricadeError,
    ConfigurationError,
    FileAccessError,
    HashError,
    MoveError,
    ConflictError,
    ScanError,
    TooLargeError,
    UnlinkError,
)
from .notifications import DesktopNotifier, NotificationConfig

__all__ = [
    "setup_logging",
    "get_logger",
    "BarricadeError",
    "ConfigurationError",
    "FileAccessError",
    "HashError",
    "MoveError",
    "ConflictError",
    "ScanError",
    "TooLargeError",
    "UnlinkError",
    "DesktopNotifier",
    "NotificationConfig",
]
