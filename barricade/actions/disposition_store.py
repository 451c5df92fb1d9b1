"""
Disposition Store
=================

Quarantine and vault holding areas.

A placed file is stored as ``{epoch_millis}_{original_name}.quarantined``
(or ``.vault``) next to a JSON sidecar ``<stored name>.meta.json`` holding
its provenance. A record exists only while both halves of the pair exist;
listings ignore either half on its own.

Ordering for ``place``: digest, then content move, then sidecar commit.
The sidecar is written to a temporary name and renamed into place, and a
failed sidecar commit moves the content back, so no orphan survives a
failure.
"""

import errno
import json
import os
import shutil
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from barricade.actions.conflict_resolver import ConflictResolver, ConflictStrategy
from barricade.config.settings import StoreConfig
from barricade.security.hasher import ContentHasher
from barricade.security.path_locks import PathLockRegistry, refuse_symlink
from barricade.utils.exceptions import ErrorCode, FileAccessError, MoveError
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)

META_SUFFIX = ".meta.json"
TEMP_SUFFIX = ".tmp"


class DispositionKind(Enum):
    """Holding area a file is placed in."""
    QUARANTINE = "quarantine"
    VAULT = "vault"

    @property
    def suffix(self) -> str:
        return ".quarantined" if self is DispositionKind.QUARANTINE else ".vault"

    @classmethod
    def from_stored_name(cls, name: str) -> Optional["DispositionKind"]:
        for kind in cls:
            if name.endswith(kind.suffix):
                return kind
        return None


@dataclass
class DispositionRecord:
    """One quarantine or vault entry.

    Attributes:
        id: Stored file name; unique within its holding area.
        original_path: Where the file lived before placement.
        original_name: File name before placement.
        timestamp: When the file was placed (UTC).
        reason: Free-text reason supplied by the caller.
        digest: SHA-256 of the content, computed before the move.
        stored_path: Current location of the content.
        kind: Quarantine or vault.
    """
    id: str
    original_path: Path
    original_name: str
    timestamp: datetime
    reason: str
    digest: str
    stored_path: Path
    kind: DispositionKind

    @property
    def meta_path(self) -> Path:
        return _meta_path(self.stored_path)

    def to_metadata(self) -> Dict[str, Any]:
        """Sidecar content."""
        return {
            "originalPath": str(self.original_path),
            "originalName": self.original_name,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "sha256": self.digest,
            "kind": self.kind.value,
        }

    @classmethod
    def from_metadata(cls, stored_path: Path, data: Dict[str, Any]) -> "DispositionRecord":
        """Rebuild a record from its sidecar content.

        A timestamp without an offset is taken as UTC.
        """
        if "kind" in data:
            kind = DispositionKind(data["kind"])
        else:
            kind = DispositionKind.from_stored_name(stored_path.name)
            if kind is None:
                raise KeyError("kind")
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            id=stored_path.name,
            original_path=Path(data["originalPath"]),
            original_name=data["originalName"],
            timestamp=timestamp,
            reason=data.get("reason", ""),
            digest=data["sha256"],
            stored_path=stored_path,
            kind=kind,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = self.to_metadata()
        result["id"] = self.id
        result["storedPath"] = str(self.stored_path)
        return result


def _meta_path(stored_path: Path) -> Path:
    return stored_path.with_name(stored_path.name + META_SUFFIX)


def _move(source: Path, destination: Path) -> None:
    """Rename, falling back to copy-and-delete across filesystems."""
    try:
        os.rename(source, destination)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        shutil.move(str(source), str(destination))


class DispositionStore:
    """Reversible placement of files into quarantine or the vault."""

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        hasher: Optional[ContentHasher] = None,
        locks: Optional[PathLockRegistry] = None,
        resolver: Optional[ConflictResolver] = None
    ):
        """Initialize the store.

        Args:
            config: Holding directories and restore conflict policy.
            hasher: Digest used for provenance.
            locks: Shared per-path lock registry.
            resolver: Restore conflict resolver.
        """
        self.config = config or StoreConfig()
        self.hasher = hasher or ContentHasher()
        self.locks = locks or PathLockRegistry()
        self.resolver = resolver or ConflictResolver(
            ConflictStrategy(self.config.restore_conflict)
        )

    def directory_for(self, kind: DispositionKind) -> Path:
        if kind is DispositionKind.QUARANTINE:
            return Path(self.config.quarantine_directory)
        return Path(self.config.vault_directory)

    def place(self, path: Path, reason: str, kind: DispositionKind) -> DispositionRecord:
        """Move a file into a holding area with a provenance sidecar.

        Args:
            path: File to place.
            reason: Free-text reason.
            kind: Target holding area.

        Returns:
            The committed DispositionRecord.

        Raises:
            FileAccessError: If the source is missing, not a regular file
                or a symbolic link.
            HashError: If the digest fails; nothing was moved.
            MoveError: If the move or sidecar commit fails; the source is
                back at its original path.
        """
        source = Path(path).expanduser().absolute()
        holding = self.directory_for(kind)

        with self.locks.hold(source):
            refuse_symlink(source)
            if not source.is_file():
                raise FileAccessError(
                    "File does not exist",
                    file_path=str(source),
                    error_code=ErrorCode.FILE_NOT_FOUND
                )

            digest = self.hasher.compute(source)

            try:
                holding.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise MoveError(
                    f"Cannot create holding directory: {e.strerror or e}",
                    file_path=str(holding),
                    cause=e
                )
            stored_path = self._free_stored_path(holding, source.name, kind)

            with self.locks.hold(stored_path):
                try:
                    _move(source, stored_path)
                except OSError as e:
                    raise MoveError(
                        f"Cannot move file into {kind.value}: {e.strerror or e}",
                        file_path=str(source),
                        cause=e
                    )

                record = DispositionRecord(
                    id=stored_path.name,
                    original_path=source,
                    original_name=source.name,
                    timestamp=datetime.now(timezone.utc),
                    reason=reason,
                    digest=digest,
                    stored_path=stored_path,
                    kind=kind,
                )

                try:
                    self._commit_metadata(record)
                except OSError as e:
                    self._roll_back(stored_path, source)
                    raise MoveError(
                        f"Cannot write {kind.value} metadata: {e.strerror or e}",
                        file_path=str(source),
                        error_code=ErrorCode.METADATA_WRITE_FAILED,
                        cause=e
                    )

        logger.info(
            f"Placed in {kind.value}: {source.name}",
            extra={"file_path": str(source), "disposition": kind.value}
        )
        return record

    def restore(self, record_id: str, kind: Optional[DispositionKind] = None) -> Path:
        """Move stored content back to its original location.

        Args:
            record_id: Record id (stored file name).
            kind: Holding area; inferred from the id suffix if omitted.

        Returns:
            Path the content was restored to.

        Raises:
            FileAccessError: If no complete record exists for ``record_id``.
            ConflictError: If the original path is occupied and the policy
                is "fail".
            MoveError: If the content cannot be moved back.
        """
        record = self.get(record_id, kind)

        with self.locks.hold(record.stored_path, record.original_path):
            if not self.hasher.verify(record.stored_path, record.digest):
                logger.warning(f"Digest mismatch on restore: {record.id}")

            target = self.resolver.resolve(record.stored_path, record.original_path)

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                _move(record.stored_path, target)
            except OSError as e:
                raise MoveError(
                    f"Cannot restore file: {e.strerror or e}",
                    file_path=str(target),
                    cause=e
                )

            try:
                record.meta_path.unlink()
            except OSError as e:
                # Content is back; a sidecar without content is never listed
                logger.warning(f"Could not remove metadata for {record.id}: {e}")

        logger.info(
            f"Restored from {record.kind.value}: {target}",
            extra={"file_path": str(target), "disposition": record.kind.value}
        )
        return target

    def get(self, record_id: str, kind: Optional[DispositionKind] = None) -> DispositionRecord:
        """Load one complete record.

        Raises:
            FileAccessError: If the id is unknown or either half is missing.
        """
        kind = kind or DispositionKind.from_stored_name(record_id)
        if kind is None or not record_id.endswith(kind.suffix) or Path(record_id).name != record_id:
            raise FileAccessError(
                f"Not a valid record id: {record_id}",
                error_code=ErrorCode.RECORD_NOT_FOUND
            )

        stored_path = self.directory_for(kind) / record_id
        record = self._read_record(stored_path)
        if record is None:
            raise FileAccessError(
                f"No {kind.value} record: {record_id}",
                file_path=str(stored_path),
                error_code=ErrorCode.RECORD_NOT_FOUND
            )
        return record

    def list(self, kind: DispositionKind) -> List[DispositionRecord]:
        """List complete records in a holding area, oldest first.

        Content files without a readable sidecar (and sidecars without
        content) are skipped.
        """
        holding = self.directory_for(kind)
        if not holding.is_dir():
            return []

        records = []
        for entry in sorted(holding.iterdir()):
            if not entry.name.endswith(kind.suffix):
                continue
            record = self._read_record(entry)
            if record is None:
                logger.debug(f"Skipping orphaned {kind.value} entry: {entry.name}")
                continue
            records.append(record)

        records.sort(key=lambda r: r.timestamp)
        return records

    def _read_record(self, stored_path: Path) -> Optional[DispositionRecord]:
        meta_path = _meta_path(stored_path)
        if not stored_path.is_file() or not meta_path.is_file():
            return None
        try:
            with open(meta_path, "r", encoding="utf-8") as f:
                return DispositionRecord.from_metadata(stored_path, json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable metadata {meta_path.name}: {e}")
            return None

    def _free_stored_path(self, holding: Path, name: str, kind: DispositionKind) -> Path:
        millis = int(time.time() * 1000)
        stored_path = holding / f"{millis}_{name}{kind.suffix}"
        while stored_path.exists() or _meta_path(stored_path).exists():
            millis += 1
            stored_path = holding / f"{millis}_{name}{kind.suffix}"
        return stored_path

    def _commit_metadata(self, record: DispositionRecord) -> None:
        """Write the sidecar to a temp name, then rename it into place."""
        meta_path = record.meta_path
        temp_path = meta_path.with_name(meta_path.name + TEMP_SUFFIX)
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(record.to_metadata(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, meta_path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def _roll_back(self, stored_path: Path, source: Path) -> None:
        try:
            _move(stored_path, source)
            logger.warning(f"Metadata write failed, returned {source.name} to its original path")
        except OSError as e:
            logger.error(f"Rollback failed, content left at {stored_path}: {e}")
