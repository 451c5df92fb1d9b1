"""
Content Hasher
==============

Streams file bytes through SHA-256 for provenance records and
round-trip verification of quarantined/vaulted content.
"""

import hashlib
from pathlib import Path

from barricade.utils.logging_config import get_logger
from barricade.utils.exceptions import HashError

logger = get_logger(__name__)


class ContentHasher:
    """Streaming SHA-256 hasher.

    Files are read in fixed-size chunks; memory use does not depend on
    file size.
    """

    ALGORITHM = "sha256"

    def __init__(self, chunk_size: int = 1024 * 1024):
        """Initialize hasher.

        Args:
            chunk_size: Read size in bytes (default 1MB).
        """
        self.chunk_size = chunk_size

    def compute(self, file_path: Path) -> str:
        """Compute the SHA-256 digest of a file.

        Args:
            file_path: Path to the file.

        Returns:
            Hexadecimal digest string (64 chars).

        Raises:
            HashError: If the file cannot be opened or the read is
                interrupted. Callers must abort any pending move.
        """
        file_path = Path(file_path)
        hasher = hashlib.sha256()

        try:
            with open(file_path, 'rb') as f:
                for chunk in iter(lambda: f.read(self.chunk_size), b""):
                    hasher.update(chunk)
        except OSError as e:
            raise HashError(
                f"Cannot hash file: {e.strerror or e}",
                file_path=str(file_path),
                details={"algorithm": self.ALGORITHM},
                cause=e
            )

        digest = hasher.hexdigest()
        logger.debug(f"Hashed {file_path.name}: {digest[:12]}")
        return digest

    def verify(self, file_path: Path, expected: str) -> bool:
        """Check a file against a previously recorded digest."""
        return self.compute(file_path) == expected.lower()
