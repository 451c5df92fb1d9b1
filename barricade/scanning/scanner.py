"""
Directory Scanner
=================

Walks monitored sectors to a bounded depth, producing classified file
records. Unreadable subtrees are skipped; a scan never aborts as a whole.
"""

import os
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from barricade.classification.threat_classifier import ThreatClassifier
from barricade.config.categories import SectorType, get_sector_type
from barricade.config.settings import ScannerConfig
from barricade.classification.file_record import FileRecord
from barricade.security.path_locks import PathLockRegistry
from barricade.utils.exceptions import FileAccessError, ScanError
from barricade.utils.logging_config import get_logger, Timer

logger = get_logger(__name__)


class DirectoryScanner:
    """Depth-bounded walker over monitored sectors.

    Files whose path is currently held by a disposition (see
    ``PathLockRegistry``) are left out, so a rescan never reports a file
    that is in the middle of being moved or shredded.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        classifier: Optional[ThreatClassifier] = None,
        locks: Optional[PathLockRegistry] = None
    ):
        """Initialize the scanner.

        Args:
            config: Scanner configuration.
            classifier: Classifier applied to every record produced.
            locks: Shared per-path lock registry.
        """
        self.config = config or ScannerConfig()
        self.classifier = classifier or ThreatClassifier()
        self.locks = locks or PathLockRegistry()
        self.skipped_subtrees: List[ScanError] = []

    def scan_all(self) -> List[FileRecord]:
        """Scan every configured sector.

        A path reachable from two sectors (e.g. Pictures/Screenshots) is
        reported once, under the first sector that reaches it.

        Returns:
            Classified records for all sectors.
        """
        records: List[FileRecord] = []
        seen: Set[Path] = set()
        self.skipped_subtrees = []

        with Timer(logger, "scan_all"):
            for name, directory in self.config.sectors.items():
                logger.debug(f"Scanning {name}: {directory}")
                sector = _sector_from_name(name)
                for record in self._scan(directory, self.config.max_depth, sector):
                    if record.path in seen:
                        continue
                    seen.add(record.path)
                    records.append(record)

        logger.info(f"Total files scanned: {len(records)}")
        return records

    def scan_directory(
        self,
        directory: Path,
        max_depth: Optional[int] = None
    ) -> List[FileRecord]:
        """Scan one directory (not necessarily a configured sector)."""
        self.skipped_subtrees = []
        depth = self.config.directory_max_depth if max_depth is None else max_depth
        return list(self._scan(Path(directory), depth, None))

    def scan_one(self, path: Path) -> FileRecord:
        """Build a classified record for a single file.

        Raises:
            FileAccessError: If the path cannot be stat'ed or is not a file.
        """
        path = Path(path)
        try:
            stat_result = path.stat()
        except OSError as e:
            raise FileAccessError.from_os_error(e, path)

        if not path.is_file():
            raise FileAccessError("Path is not a regular file", file_path=str(path))

        return self.classifier.apply(FileRecord.from_stat(path, stat_result))

    def _scan(
        self,
        directory: Path,
        max_depth: int,
        sector: Optional[SectorType]
    ) -> Iterator[FileRecord]:
        directory = Path(directory).expanduser()
        if not directory.is_dir():
            logger.debug(f"Sector directory missing, skipping: {directory}")
            return

        for path, stat_result in self._walk(directory, 0, max_depth):
            location = get_sector_type(path.parent)
            if location == SectorType.OTHER and sector is not None:
                location = sector
            record = FileRecord.from_stat(path, stat_result, location)
            yield self.classifier.apply(record)

    def _walk(self, directory: Path, depth: int, max_depth: int) -> Iterator:
        """Yield (path, stat) for regular files up to ``max_depth`` levels."""
        if depth >= max_depth:
            return

        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            error = ScanError(f"Cannot read directory: {e}", file_path=str(directory), cause=e)
            self.skipped_subtrees.append(error)
            logger.warning(f"Skipping unreadable subtree: {directory} ({e.strerror or e})")
            return

        for entry in entries:
            if self.config.skip_hidden and entry.name.startswith((".", "$")):
                continue

            path = Path(entry.path)
            try:
                if entry.is_file(follow_symlinks=False):
                    if self.locks.is_locked(path):
                        logger.debug(f"Skipping file under disposition: {path}")
                        continue
                    yield path, entry.stat(follow_symlinks=False)
                elif entry.is_dir(follow_symlinks=False) and depth < max_depth - 1:
                    yield from self._walk(path, depth + 1, max_depth)
            except OSError as e:
                # Vanished or unreadable between listing and stat
                logger.debug(f"Cannot access: {path} ({e})")


def _sector_from_name(name: str) -> Optional[SectorType]:
    lookup: Dict[str, SectorType] = {s.value.lower(): s for s in SectorType}
    return lookup.get(name.lower())
