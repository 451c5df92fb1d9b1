"""Actions module for Barricade."""

from .conflict_resolver import ConflictResolver, ConflictStrategy
from .disposition_store import (
    DispositionKind,
    DispositionRecord,
    DispositionStore,
)
from .file_operations import FileOperations, OrganizeResult
from .history_tracker import HistoryEntry, SecurityHistory
from .commands import (
    Action,
    ActionExecutor,
    ActionResult,
    DeepScanAction,
    DeleteAction,
    OperationResult,
    OrganizeAction,
    QuarantineAction,
    ScanAction,
    SettingsPatch,
    ShredAction,
    UpdateSettingsAction,
    VaultAction,
)

__all__ = [
    "ConflictResolver",
    "ConflictStrategy",
    "DispositionKind",
    "DispositionRecord",
    "DispositionStore",
    "FileOperations",
    "OrganizeResult",
    "HistoryEntry",
    "SecurityHistory",
    "Action",
    "ActionExecutor",
    "ActionResult",
    "DeepScanAction",
    "DeleteAction",
    "OperationResult",
    "OrganizeAction",
    "QuarantineAction",
    "ScanAction",
    "SettingsPatch",
    "ShredAction",
    "UpdateSettingsAction",
    "VaultAction",
]
