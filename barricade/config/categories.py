"""
Category Definitions
====================

Coarse file type categories, monitored sector types and the extension
mappings used when building file records.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Union


class FileType(Enum):
    """Coarse type category of a file."""
    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    DOCUMENT = "Document"
    CODE = "Code"
    ARCHIVE = "Archive"
    EXECUTABLE = "Executable"
    APPLICATION = "Application"
    OTHER = "Other"


class SectorType(Enum):
    """Which monitored sector a file belongs to."""
    DOWNLOADS = "Downloads"
    SCREENSHOTS = "Screenshots"
    DOCUMENTS = "Documents"
    DESKTOP = "Desktop"
    PICTURES = "Pictures"
    QUARANTINE = "Quarantine"
    VAULT = "Vault"
    OTHER = "Other"


EXTENSION_TYPES: Dict[str, FileType] = {
    # Images
    ".png": FileType.IMAGE, ".jpg": FileType.IMAGE, ".jpeg": FileType.IMAGE,
    ".gif": FileType.IMAGE, ".webp": FileType.IMAGE, ".bmp": FileType.IMAGE,
    ".svg": FileType.IMAGE, ".ico": FileType.IMAGE,
    # Videos
    ".mp4": FileType.VIDEO, ".avi": FileType.VIDEO, ".mov": FileType.VIDEO,
    ".mkv": FileType.VIDEO, ".wmv": FileType.VIDEO, ".webm": FileType.VIDEO,
    # Audio
    ".mp3": FileType.AUDIO, ".wav": FileType.AUDIO, ".flac": FileType.AUDIO,
    ".aac": FileType.AUDIO, ".ogg": FileType.AUDIO, ".m4a": FileType.AUDIO,
    # Documents
    ".pdf": FileType.DOCUMENT, ".doc": FileType.DOCUMENT, ".docx": FileType.DOCUMENT,
    ".xls": FileType.DOCUMENT, ".xlsx": FileType.DOCUMENT, ".ppt": FileType.DOCUMENT,
    ".pptx": FileType.DOCUMENT, ".txt": FileType.DOCUMENT, ".rtf": FileType.DOCUMENT,
    ".odt": FileType.DOCUMENT, ".ods": FileType.DOCUMENT,
    # Code
    ".js": FileType.CODE, ".ts": FileType.CODE, ".py": FileType.CODE,
    ".java": FileType.CODE, ".cpp": FileType.CODE, ".c": FileType.CODE,
    ".h": FileType.CODE, ".css": FileType.CODE, ".html": FileType.CODE,
    ".json": FileType.CODE, ".xml": FileType.CODE,
    # Archives
    ".zip": FileType.ARCHIVE, ".rar": FileType.ARCHIVE, ".7z": FileType.ARCHIVE,
    ".tar": FileType.ARCHIVE, ".gz": FileType.ARCHIVE,
    # Executables
    ".exe": FileType.EXECUTABLE, ".msi": FileType.EXECUTABLE, ".bat": FileType.EXECUTABLE,
    ".cmd": FileType.EXECUTABLE, ".ps1": FileType.EXECUTABLE, ".sh": FileType.EXECUTABLE,
    # Applications
    ".app": FileType.APPLICATION, ".dmg": FileType.APPLICATION,
}

EXECUTABLE_EXTENSIONS: FrozenSet[str] = frozenset(
    ext for ext, file_type in EXTENSION_TYPES.items()
    if file_type in (FileType.EXECUTABLE, FileType.APPLICATION)
) | {".scr", ".pif", ".com", ".vbs", ".dll", ".so", ".elf", ".bin"}

# Substring of a lower-cased directory path -> sector, checked in order
_SECTOR_MARKERS = (
    ("download", SectorType.DOWNLOADS),
    ("screenshot", SectorType.SCREENSHOTS),
    ("document", SectorType.DOCUMENTS),
    ("desktop", SectorType.DESKTOP),
    ("picture", SectorType.PICTURES),
    ("quarantine", SectorType.QUARANTINE),
    ("vault", SectorType.VAULT),
)


def get_file_type(extension: str) -> FileType:
    """Map a file extension (with leading dot) to its coarse type."""
    return EXTENSION_TYPES.get(extension.lower(), FileType.OTHER)


def get_sector_type(directory: Union[str, Path]) -> SectorType:
    """Infer the sector a directory belongs to from its path."""
    lower_path = str(directory).lower()
    for marker, sector in _SECTOR_MARKERS:
        if marker in lower_path:
            return sector
    return SectorType.OTHER
