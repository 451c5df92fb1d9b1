"""
Logging Configuration
=====================

Structured logging for the engine.

Console output is colored and human-readable; the optional rotating log
file holds one JSON object per line. Log lines emitted while an engine
operation runs share that operation's correlation id, so a quarantine
or a sentry tick can be followed through hasher, store and locks.
"""

import json
import logging
import logging.handlers
import sys
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

ROOT_LOGGER_NAME = "barricade"
LOG_FILE_NAME = "barricade.log"

# Record attributes passed via ``extra=`` that the formatters render
CONTEXT_FIELDS = ("file_path", "operation", "disposition", "duration_ms", "error_code")

_scope = threading.local()


def get_correlation_id() -> str:
    """Correlation id of the operation running on this thread."""
    correlation_id = getattr(_scope, "correlation_id", None)
    if correlation_id is None:
        correlation_id = _scope.correlation_id = uuid.uuid4().hex[:8]
    return correlation_id


def set_correlation_id(correlation_id: str) -> None:
    _scope.correlation_id = correlation_id


@contextmanager
def operation_scope(operation: str) -> Iterator[str]:
    """Give every log line inside the block a fresh correlation id.

    The previous id is restored on exit, so scopes nest.

    Example:
        with operation_scope("quarantine"):
            store.place(path, reason, kind)
    """
    previous = getattr(_scope, "correlation_id", None)
    correlation_id = f"{operation[:4]}-{uuid.uuid4().hex[:6]}"
    _scope.correlation_id = correlation_id
    try:
        yield correlation_id
    finally:
        _scope.correlation_id = previous


def _context(record: logging.LogRecord) -> dict:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for the log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        entry.update(_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        clock = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        short_name = record.name[len(ROOT_LOGGER_NAME) + 1:] or record.name

        line = (
            f"{color}[{clock}] {record.levelname:8}{self.RESET} "
            f"[{get_correlation_id()}] {short_name}: {record.getMessage()}"
        )

        context = _context(record)
        if "duration_ms" in context:
            line += f" ({context['duration_ms']} ms)"
        if "disposition" in context:
            line += f" [{context['disposition']}]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


@dataclass
class LoggingConfig:
    """Runtime logging options."""
    level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: Path.home() / ".barricade" / "logs")
    console_output: bool = True
    file_output: bool = True
    json_format: bool = False  # JSON on the console too
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    @classmethod
    def from_section(cls, section, level: Optional[str] = None) -> "LoggingConfig":
        """Build from the ``logging`` section of the config file.

        Args:
            section: A ``LoggingSection``.
            level: Overrides the configured level (e.g. quiet CLI runs).
        """
        return cls(
            level=level or section.level,
            log_dir=section.log_dir,
            file_output=section.file_output,
            json_format=section.json_format,
        )


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install handlers on the ``barricade`` logger.

    Calling it again replaces the previous handlers.
    """
    config = config or LoggingConfig()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config.console_output:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(JSONFormatter() if config.json_format else ConsoleFormatter())
        logger.addHandler(console)

    if config.file_output:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_dir / LOG_FILE_NAME,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``barricade`` namespace for a module name."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class Timer:
    """Logs how long a block took, at INFO on success and WARNING on error.

    Example:
        with Timer(logger, "shred", file_path=str(path)):
            ...
    """

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration_ms = 0.0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = round((time.perf_counter() - self._started) * 1000, 2)
        extra = dict(self.context, operation=self.operation, duration_ms=self.duration_ms)

        if exc_type is None:
            self.logger.info(f"{self.operation} finished", extra=extra)
        else:
            self.logger.warning(f"{self.operation} aborted: {exc_type.__name__}", extra=extra)
        return False
