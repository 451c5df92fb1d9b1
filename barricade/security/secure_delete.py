"""
Secure File Deletion
====================

Multi-pass secure shredding (random overwrite, then unlink) and
reversible deletion to the system trash.

Shredding is best effort: on copy-on-write filesystems, snapshots, or
flash storage with wear-leveling, earlier copies of the data may survive
the overwrite. Every ShredResult carries that caveat for the caller.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import os
import secrets

from send2trash import send2trash

from barricade.security.path_locks import PathLockRegistry, refuse_symlink
from barricade.utils.logging_config import get_logger, Timer
from barricade.utils.exceptions import ErrorCode, FileAccessError, UnlinkError

logger = get_logger(__name__)

STORAGE_CAVEAT = (
    "Best-effort overwrite on conventional storage only; copy-on-write "
    "filesystems, snapshots and flash wear-leveling may retain prior content."
)


@dataclass
class ShredResult:
    """Outcome of a completed shred.

    Attributes:
        path: Path that was shredded.
        size: Bytes overwritten per pass.
        passes: Number of overwrite passes performed (0 for empty files).
        caveat: Storage limitation that applies to every shred.
    """
    path: Path
    size: int
    passes: int
    caveat: str = STORAGE_CAVEAT

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "path": str(self.path),
            "size": self.size,
            "passes": self.passes,
            "caveat": self.caveat,
        }


class ShredEngine:
    """Destructive overwrite-then-unlink of single files.

    A shred is synchronous and not interruptible; an interruption after
    the first pass leaves an overwritten-but-present file, whose content
    is already destroyed.
    """

    # Buffer size for writing random data
    BUFFER_SIZE = 65536  # 64KB

    def __init__(
        self,
        passes: int = 3,
        fsync: bool = True,
        locks: Optional[PathLockRegistry] = None
    ):
        """Initialize shred engine.

        Args:
            passes: Number of random overwrite passes (clamped to 1-7).
            fsync: Flush every pass to disk.
            locks: Shared per-path lock registry.
        """
        self.passes = min(max(passes, 1), 7)
        self.fsync = fsync
        self.locks = locks or PathLockRegistry()

    def shred(self, file_path: Path) -> ShredResult:
        """Overwrite a file with random data, then remove it.

        A zero-byte file skips the overwrite passes and is unlinked directly.

        Args:
            file_path: Path to file to shred.

        Returns:
            ShredResult describing the destroyed file.

        Raises:
            FileAccessError: If the file is missing, is a symbolic link,
                is not a regular file, or cannot be overwritten.
            UnlinkError: If the overwrite succeeded but removal failed.
                The content is destroyed; retry with ``remove()``.
        """
        file_path = Path(file_path)

        with self.locks.hold(file_path):
            refuse_symlink(file_path)
            try:
                file_size = file_path.stat().st_size
            except OSError as e:
                raise FileAccessError.from_os_error(e, file_path)

            if not file_path.is_file():
                raise FileAccessError(
                    "Path is not a file",
                    file_path=str(file_path),
                    error_code=ErrorCode.SHRED_FAILED
                )

            passes = self.passes if file_size > 0 else 0

            with Timer(logger, "shred", file_path=str(file_path)):
                for pass_num in range(passes):
                    try:
                        self._overwrite_pass(file_path, file_size)
                    except OSError as e:
                        raise FileAccessError(
                            f"Overwrite pass {pass_num + 1} failed: {e.strerror or e}",
                            file_path=str(file_path),
                            error_code=ErrorCode.SHRED_FAILED,
                            cause=e
                        )

                self.remove(file_path)

        logger.info(f"Shredded: {file_path.name} ({passes} passes, {file_size} bytes)")
        return ShredResult(path=file_path, size=file_size, passes=passes)

    def _overwrite_pass(self, file_path: Path, file_size: int) -> None:
        """Overwrite the full content once with cryptographically random bytes."""
        with open(file_path, 'r+b') as f:
            bytes_written = 0
            while bytes_written < file_size:
                chunk_size = min(self.BUFFER_SIZE, file_size - bytes_written)
                f.write(secrets.token_bytes(chunk_size))
                bytes_written += chunk_size

            f.flush()
            if self.fsync:
                os.fsync(f.fileno())

    def remove(self, file_path: Path) -> None:
        """Unlink a (previously overwritten) file.

        Raises:
            UnlinkError: If removal fails.
        """
        try:
            Path(file_path).unlink()
        except OSError as e:
            logger.error(f"Overwrite succeeded but unlink failed: {file_path} ({e})")
            raise UnlinkError(
                f"File overwritten but could not be removed: {e.strerror or e}",
                file_path=str(file_path),
                details={"content_destroyed": True},
                cause=e
            )

    def trash(self, file_path: Path) -> None:
        """Move a file to the system trash (reversible delete).

        Raises:
            FileAccessError: If the file is missing, is a symbolic link or
                the trash refuses it.
        """
        file_path = Path(file_path)

        with self.locks.hold(file_path):
            refuse_symlink(file_path)
            if not file_path.exists():
                raise FileAccessError(
                    "File does not exist",
                    file_path=str(file_path),
                    error_code=ErrorCode.FILE_NOT_FOUND
                )
            try:
                send2trash(str(file_path))
            except OSError as e:
                raise FileAccessError.from_os_error(e, file_path)

        logger.info(f"Moved to trash: {file_path.name}")
