"""
Commands
========

Typed commands accepted from the external command layer, and the
executor that runs them against a working set of file records.

Each action kind is its own dataclass carrying only the payload it
needs; settings changes travel as a typed ``SettingsPatch``.
"""

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from barricade.classification.file_record import FileRecord
from barricade.config.settings import SentryConfig
from barricade.utils.exceptions import ConfigurationError, ErrorCode
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class OperationResult:
    """Structured outcome of one engine operation.

    Attributes:
        success: Whether the operation completed.
        message: Human-readable outcome.
        data: Operation payload (record, report, path...).
        error_code: Name of the ErrorCode on failure.
        file_id: Working-set id of the file acted on, if any.
    """
    success: bool
    message: str = ""
    data: Any = None
    error_code: Optional[str] = None
    file_id: Optional[str] = None

    @classmethod
    def failure(cls, message: str, error_code: ErrorCode, **kwargs) -> "OperationResult":
        return cls(success=False, message=message, error_code=error_code.name, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = self.data
        if hasattr(data, "to_dict"):
            data = data.to_dict()
        elif isinstance(data, list):
            data = [d.to_dict() if hasattr(d, "to_dict") else d for d in data]
        return {
            "success": self.success,
            "message": self.message,
            "data": data,
            "errorCode": self.error_code,
            "fileId": self.file_id,
        }


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"expected true or false, got {value!r}")


def _to_interval(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("interval cannot be a bool")
    minutes = float(value)
    if not math.isfinite(minutes) or minutes <= 0:
        raise ValueError(f"interval must be a positive number of minutes, got {value!r}")
    return minutes


def _to_count(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("threshold cannot be a bool")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"threshold must be a whole number, got {value!r}")
    count = int(value)
    if count < 0:
        raise ValueError(f"threshold cannot be negative, got {value!r}")
    return count


@dataclass
class SettingsPatch:
    """Partial update of the sentry settings; None means unchanged."""
    enabled: Optional[bool] = None
    native_notifications: Optional[bool] = None
    interval_minutes: Optional[float] = None
    screenshot_threshold: Optional[int] = None
    download_threshold: Optional[int] = None

    # Names used by the external layer
    ALIASES = {
        "enableProactiveSentry": "enabled",
        "enableNativeNotifications": "native_notifications",
        "sentryScanInterval": "interval_minutes",
    }

    # Field -> (converter, expected type shown in errors)
    CONVERTERS = {
        "enabled": (_to_bool, "bool"),
        "native_notifications": (_to_bool, "bool"),
        "interval_minutes": (_to_interval, "positive number"),
        "screenshot_threshold": (_to_count, "non-negative integer"),
        "download_threshold": (_to_count, "non-negative integer"),
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettingsPatch":
        """Build a patch, ignoring keys that are not sentry settings.

        Raises:
            ConfigurationError: If a value has the wrong type or range.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = cls.ALIASES.get(key, key)
            if name not in known:
                logger.debug(f"Ignoring unknown setting: {key}")
            elif value is not None:
                values[name] = cls._convert(name, value)
        return cls(**values)

    @classmethod
    def _convert(cls, name: str, value: Any) -> Any:
        converter, expected = cls.CONVERTERS[name]
        try:
            return converter(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid value for {name}: {value!r}",
                config_key=name,
                expected_type=expected,
                cause=e
            )

    def changes(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def apply(self, settings: SentryConfig) -> Dict[str, Any]:
        """Write the set fields onto ``settings``.

        Every value is checked before any is written, so a rejected patch
        leaves ``settings`` untouched.

        Returns:
            The fields that were applied.

        Raises:
            ConfigurationError: If a value has the wrong type or range.
        """
        changes = {name: self._convert(name, value) for name, value in self.changes().items()}
        for name, value in changes.items():
            setattr(settings, name, value)
        return changes


@dataclass(frozen=True)
class QuarantineAction:
    file_ids: Tuple[str, ...]
    reason: str = "Manual quarantine request."


@dataclass(frozen=True)
class VaultAction:
    file_ids: Tuple[str, ...]
    reason: str = "Securing sensitive data."


@dataclass(frozen=True)
class DeleteAction:
    file_ids: Tuple[str, ...]


@dataclass(frozen=True)
class ShredAction:
    file_ids: Tuple[str, ...]


@dataclass(frozen=True)
class OrganizeAction:
    file_ids: Tuple[str, ...]
    category: Optional[str] = None


@dataclass(frozen=True)
class DeepScanAction:
    file_id: str


@dataclass(frozen=True)
class ScanAction:
    """Rescan every sector, or one named sector."""
    sector: Optional[str] = None


@dataclass(frozen=True)
class UpdateSettingsAction:
    patch: SettingsPatch


Action = Union[
    QuarantineAction,
    VaultAction,
    DeleteAction,
    ShredAction,
    OrganizeAction,
    DeepScanAction,
    ScanAction,
    UpdateSettingsAction,
]


@dataclass
class ActionResult:
    """Per-file outcomes of one executed action."""
    action: str
    outcomes: List[OperationResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def success(self) -> bool:
        return bool(self.outcomes) and self.success_count == len(self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "action": self.action,
            "successCount": self.success_count,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class ActionExecutor:
    """Resolves file ids against a working set and runs one action.

    ``engine`` is a ``BarricadeEngine`` (or anything with the same
    operation methods returning ``OperationResult``).
    """

    def __init__(self, engine):
        self.engine = engine

    def execute(self, action: Action, files: Iterable[FileRecord] = ()) -> ActionResult:
        """Execute an action.

        Args:
            action: Typed action.
            files: Caller's current working set; ids are resolved here.

        Returns:
            ActionResult with one outcome per targeted file.
        """
        by_id = {record.id: record for record in files}
        result = ActionResult(action=type(action).__name__)

        if isinstance(action, QuarantineAction):
            for record in self._resolve(action.file_ids, by_id, result):
                self._record(result, record.id, self.engine.quarantine(record.path, action.reason))
        elif isinstance(action, VaultAction):
            for record in self._resolve(action.file_ids, by_id, result):
                self._record(result, record.id, self.engine.vault(record.path, action.reason))
        elif isinstance(action, DeleteAction):
            for record in self._resolve(action.file_ids, by_id, result):
                self._record(result, record.id, self.engine.delete(record.path))
        elif isinstance(action, ShredAction):
            for record in self._resolve(action.file_ids, by_id, result):
                self._record(result, record.id, self.engine.shred(record.path))
        elif isinstance(action, OrganizeAction):
            for record in self._resolve(action.file_ids, by_id, result):
                self._record(result, record.id, self.engine.organize([record.path], action.category))
        elif isinstance(action, DeepScanAction):
            for record in self._resolve((action.file_id,), by_id, result):
                self._record(result, record.id, self.engine.deep_scan(record.path))
        elif isinstance(action, ScanAction):
            result.outcomes.append(self.engine.rescan(action.sector))
        elif isinstance(action, UpdateSettingsAction):
            result.outcomes.append(self.engine.update_settings(action.patch))
        else:
            raise TypeError(f"Unsupported action: {type(action).__name__}")

        logger.info(
            f"Executed {result.action}: {result.success_count}/{len(result.outcomes)} succeeded"
        )
        return result

    @staticmethod
    def _resolve(file_ids, by_id, result: ActionResult):
        for file_id in file_ids:
            record = by_id.get(file_id)
            if record is None:
                result.outcomes.append(OperationResult.failure(
                    f"Unknown file id: {file_id}",
                    ErrorCode.RECORD_NOT_FOUND,
                    file_id=file_id,
                ))
                continue
            yield record

    @staticmethod
    def _record(result: ActionResult, file_id: str, outcome: OperationResult) -> None:
        outcome.file_id = file_id
        result.outcomes.append(outcome)
