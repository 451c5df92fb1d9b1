"""Configuration module for Barricade."""

from .settings import (
    Config,
    ScannerConfig,
    StoreConfig,
    ShredConfig,
    ForensicConfig,
    SentryConfig,
    LoggingSection,
)
from .categories import FileType, SectorType, get_file_type, get_sector_type

__all__ = [
    "Config",
    "ScannerConfig",
    "StoreConfig",
    "ShredConfig",
    "ForensicConfig",
    "SentryConfig",
    "LoggingSection",
    "FileType",
    "SectorType",
    "get_file_type",
    "get_sector_type",
]
