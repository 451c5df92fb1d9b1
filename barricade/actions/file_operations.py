"""
File Operations
===============

Smart Organize: moves files into per-category subfolders beside them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional
import shutil

from barricade.actions.conflict_resolver import ConflictResolver, ConflictStrategy
from barricade.config.categories import get_file_type
from barricade.security.path_locks import PathLockRegistry
from barricade.utils.exceptions import BarricadeError, ErrorCode, FileAccessError, MoveError
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class OrganizeResult:
    """Outcome for one file of an organize request."""
    original: Path
    new_path: Optional[Path] = None
    success: bool = True
    message: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "original": str(self.original),
            "newPath": str(self.new_path) if self.new_path else None,
            "success": self.success,
            "message": self.message,
        }


class FileOperations:
    """Moves files into category folders with collision-safe names."""

    def __init__(
        self,
        locks: Optional[PathLockRegistry] = None,
        resolver: Optional[ConflictResolver] = None
    ):
        """Initialize file operations.

        Args:
            locks: Shared per-path lock registry.
            resolver: Collision resolver (timestamp suffix by default).
        """
        self.locks = locks or PathLockRegistry()
        self.resolver = resolver or ConflictResolver(ConflictStrategy.TIMESTAMP)

    def organize(
        self,
        paths: Iterable[Path],
        category: Optional[str] = None
    ) -> List[OrganizeResult]:
        """Move each file into ``<its directory>/<category or file type>/``.

        Missing paths are skipped. A failure on one file does not stop
        the others.

        Args:
            paths: Files to organize.
            category: Folder name to use instead of the detected file type.

        Returns:
            One OrganizeResult per existing input path.
        """
        results = []
        for path in paths:
            source = Path(path).expanduser()
            if not source.exists():
                logger.debug(f"Organize skipping missing path: {source}")
                continue

            subfolder = category or get_file_type(source.suffix.lower()).value
            try:
                new_path = self.move_file(source, source.parent / subfolder)
                results.append(OrganizeResult(original=source, new_path=new_path))
            except BarricadeError as e:
                logger.warning(f"Organize failed for {source.name}: {e.message}")
                results.append(OrganizeResult(original=source, success=False, message=e.message))

        moved = sum(1 for r in results if r.success)
        logger.info(f"Organized {moved}/{len(results)} files")
        return results

    def move_file(self, source: Path, dest_dir: Path) -> Path:
        """Move a file to destination directory.

        Args:
            source: Source file path.
            dest_dir: Destination directory.

        Returns:
            Final path of moved file.

        Raises:
            FileAccessError: If the source does not exist.
            MoveError: If move fails.
        """
        source = Path(source)
        dest_dir = Path(dest_dir)

        with self.locks.hold(source):
            if not source.exists():
                raise FileAccessError(
                    "Source file does not exist",
                    file_path=str(source),
                    error_code=ErrorCode.FILE_NOT_FOUND
                )

            try:
                dest_dir.mkdir(parents=True, exist_ok=True)
                dest_path = self.resolver.resolve(source, dest_dir / source.name)
                with self.locks.hold(dest_path):
                    shutil.move(str(source), str(dest_path))
            except OSError as e:
                raise MoveError(
                    f"Failed to move file: {e.strerror or e}",
                    file_path=str(source),
                    cause=e
                )

        logger.info(f"Moved: {source.name} -> {dest_path}")
        return dest_path
