"""
File Records
============

Classified descriptor of one filesystem entry, plus the threat and
privacy level enums shared by the classifier, summary and forensics.
"""

import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Set

from barricade.config.categories import (
    FileType,
    SectorType,
    get_file_type,
    get_sector_type,
)


class ThreatLevel(Enum):
    """Threat verdict, ordered by severity."""
    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    MALICIOUS = "malicious"

    @property
    def severity(self) -> int:
        return _THREAT_SEVERITY[self]

    def elevate(self, other: "ThreatLevel") -> "ThreatLevel":
        """Return the more severe of the two levels."""
        return other if other.severity > self.severity else self


_THREAT_SEVERITY = {
    ThreatLevel.SAFE: 0,
    ThreatLevel.SUSPICIOUS: 1,
    ThreatLevel.MALICIOUS: 2,
}


class PrivacyLevel(Enum):
    """Privacy exposure of a file."""
    PUBLIC = "public"
    SENSITIVE = "sensitive"
    CRITICAL = "critical"


@dataclass
class FileRecord:
    """A classified descriptor of one filesystem entry.

    Owned by the caller's in-memory working set; the engine never
    persists records.

    Attributes:
        id: Stable identity within one scan.
        name: File name including extension.
        path: Absolute path.
        size: Size in bytes.
        extension: Lower-cased extension with leading dot ("" if none).
        file_type: Coarse type category.
        last_modified: Modification time (UTC).
        location: Monitored sector the file belongs to.
        threat_level: Mutable threat verdict.
        privacy_level: Mutable privacy verdict.
        threat_type: Optional human-facing threat label.
        tags: Additive descriptive tags.
    """
    id: str
    name: str
    path: Path
    size: int
    extension: str
    file_type: FileType
    last_modified: datetime
    location: SectorType = SectorType.OTHER
    threat_level: ThreatLevel = ThreatLevel.SAFE
    privacy_level: PrivacyLevel = PrivacyLevel.PUBLIC
    threat_type: Optional[str] = None
    tags: Set[str] = field(default_factory=set)

    @classmethod
    def from_stat(
        cls,
        path: Path,
        stat_result: os.stat_result,
        location: Optional[SectorType] = None
    ) -> "FileRecord":
        """Build an unclassified record from a stat result."""
        path = Path(path).absolute()
        extension = path.suffix.lower()
        return cls(
            id=str(uuid.uuid4()),
            name=path.name,
            path=path,
            size=stat_result.st_size,
            extension=extension,
            file_type=get_file_type(extension),
            last_modified=datetime.fromtimestamp(stat_result.st_mtime, tz=timezone.utc),
            location=location or get_sector_type(path.parent),
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "extension": self.extension,
            "type": self.file_type.value,
            "lastModified": self.last_modified.isoformat(),
            "location": self.location.value,
            "threatLevel": self.threat_level.value,
            "privacyLevel": self.privacy_level.value,
            "threatType": self.threat_type,
            "tags": sorted(self.tags),
        }
