"""
Conflict Resolver
=================

Strategies for resolving destination conflicts when a file is restored
from a holding area or organized into a category folder.
"""

import time
from enum import Enum
from pathlib import Path
from typing import Optional

from barricade.utils.exceptions import ConflictError
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


class ConflictStrategy(Enum):
    """Strategy for handling an occupied destination."""

    FAIL = "fail"  # Raise ConflictError
    RENAME = "rename"  # Add "_restored_<n>" suffix
    TIMESTAMP = "timestamp"  # Add "_<epoch millis>" suffix


class ConflictResolver:
    """Picks a free destination path or refuses the operation.

    Never overwrites an existing file.
    """

    MAX_ATTEMPTS = 9999

    def __init__(self, strategy: ConflictStrategy = ConflictStrategy.FAIL):
        """Initialize conflict resolver.

        Args:
            strategy: Default conflict resolution strategy.
        """
        self.strategy = strategy

    def resolve(
        self,
        source: Path,
        dest_path: Path,
        strategy: Optional[ConflictStrategy] = None
    ) -> Path:
        """Resolve a destination conflict.

        Args:
            source: File about to be moved.
            dest_path: Intended destination path.
            strategy: Override default strategy.

        Returns:
            Path the file should be moved to.

        Raises:
            ConflictError: If the destination is occupied and the strategy
                is FAIL.
        """
        strategy = strategy or self.strategy
        dest_path = Path(dest_path)

        # No conflict if destination doesn't exist
        if not dest_path.exists():
            return dest_path

        if strategy == ConflictStrategy.FAIL:
            raise ConflictError(
                "Destination is occupied by another file",
                file_path=str(dest_path),
                details={"source": str(source)}
            )

        if strategy == ConflictStrategy.TIMESTAMP:
            new_path = self._timestamped_name(dest_path)
        else:
            new_path = self._generate_unique_name(dest_path)

        logger.info(f"Destination occupied, using {new_path.name} for {Path(source).name}")
        return new_path

    def _generate_unique_name(self, path: Path) -> Path:
        """Generate ``<stem>_restored_<n><suffix>`` with the first free n."""
        stem = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in range(1, self.MAX_ATTEMPTS + 1):
            new_path = parent / f"{stem}_restored_{counter}{suffix}"
            if not new_path.exists():
                return new_path

        raise ConflictError(
            "No free restore name available",
            file_path=str(path),
            details={"attempts": self.MAX_ATTEMPTS}
        )

    def _timestamped_name(self, path: Path) -> Path:
        """Generate ``<stem>_<epoch millis><suffix>``, bumping until free."""
        millis = int(time.time() * 1000)
        new_path = path.parent / f"{path.stem}_{millis}{path.suffix}"
        while new_path.exists():
            millis += 1
            new_path = path.parent / f"{path.stem}_{millis}{path.suffix}"
        return new_path
