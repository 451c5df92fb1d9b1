"""
Forensic Deep Scanner
=====================

Byte-level inspection of a single, size-bounded file:

- Shannon entropy of the byte histogram (encrypted/packed payloads)
- Data trailing the end marker of JPEG and PNG images (steganography)
- Suspicious text markers (shell interpreters, URLs, eval, base64)
- Executable content behind a non-executable extension (python-magic)

The whole file is read into one buffer; the size cap keeps that bounded.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from barricade.classification.file_record import ThreatLevel
from barricade.config.categories import EXECUTABLE_EXTENSIONS
from barricade.config.settings import ForensicConfig
from barricade.utils.exceptions import FileAccessError, TooLargeError
from barricade.utils.logging_config import get_logger, Timer

logger = get_logger(__name__)

# Lazy import for python-magic
magic = None


def _import_magic():
    """Lazy import python-magic."""
    global magic
    if magic is None:
        try:
            import magic as _magic
            magic = _magic
        except ImportError:
            magic = False
    return magic


JPEG_END_MARKER = b"\xff\xd9"
PNG_END_CHUNK = b"IEND"
# IEND tag is followed by its 4-byte CRC
PNG_TRAILER_ALLOWANCE = 8

EXECUTABLE_MIME_TYPES = frozenset({
    "application/x-dosexec",
    "application/x-msdownload",
    "application/vnd.microsoft.portable-executable",
    "application/x-executable",
    "application/x-pie-executable",
    "application/x-sharedlib",
    "application/x-mach-binary",
})


def shannon_entropy(data: bytes) -> float:
    """Shannon entropy of a byte buffer in bits per byte (0.0 to 8.0).

    Args:
        data: Buffer to measure.

    Returns:
        0.0 for an empty or single-valued buffer, 8.0 for a buffer with
        all 256 byte values equally represented.
    """
    if not data:
        return 0.0

    total = len(data)
    entropy = 0.0
    for count in Counter(data).values():
        p = count / total
        entropy -= p * math.log2(p)
    # -0.0 for single-valued buffers
    return abs(entropy)


@dataclass
class ForensicReport:
    """Result of one deep scan.

    Attributes:
        path: Scanned file.
        findings: Human-readable findings, in detection order.
        threat_level: Aggregate level; only ever raised during a scan.
        entropy: Byte entropy rounded to 2 decimals.
        size: Bytes inspected.
        mime_type: Detected MIME type, when python-magic is available.
        timestamp: When the scan finished (UTC).
    """
    path: Path
    findings: List[str] = field(default_factory=list)
    threat_level: ThreatLevel = ThreatLevel.SAFE
    entropy: float = 0.0
    size: int = 0
    mime_type: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_finding(self, finding: str, level: ThreatLevel) -> None:
        self.findings.append(finding)
        self.threat_level = self.threat_level.elevate(level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": str(self.path),
            "findings": list(self.findings),
            "threatLevel": self.threat_level.value,
            "entropy": f"{self.entropy:.2f}",
            "size": self.size,
            "mimeType": self.mime_type,
            "timestamp": self.timestamp.isoformat(),
        }


class DeepScanner:
    """Bounded-memory forensic scanner."""

    def __init__(self, config: Optional[ForensicConfig] = None):
        """Initialize the scanner.

        Args:
            config: Size cap, entropy threshold and string markers.
        """
        self.config = config or ForensicConfig()
        self._magic = None

    def _get_magic(self):
        """Get magic instance for MIME detection."""
        if self._magic is None:
            magic = _import_magic()
            if magic and magic is not False:
                try:
                    self._magic = magic.Magic(mime=True)
                except Exception as e:
                    logger.warning(f"Failed to initialize python-magic: {e}")
                    self._magic = False
            else:
                self._magic = False
        return self._magic if self._magic is not False else None

    def scan(self, file_path: Path) -> ForensicReport:
        """Run every check against one file.

        Args:
            file_path: File to inspect.

        Returns:
            ForensicReport with findings, level and entropy.

        Raises:
            FileAccessError: If the file is missing or unreadable.
            TooLargeError: If the file exceeds the configured size cap.
        """
        file_path = Path(file_path)

        try:
            size = file_path.stat().st_size
        except OSError as e:
            raise FileAccessError.from_os_error(e, file_path)

        if not file_path.is_file():
            raise FileAccessError("Path is not a regular file", file_path=str(file_path))

        if size > self.config.max_bytes:
            raise TooLargeError(
                "File too large for deep scan",
                file_path=str(file_path),
                size=size,
                limit=self.config.max_bytes
            )

        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise FileAccessError.from_os_error(e, file_path)

        with Timer(logger, "deep_scan", file_path=str(file_path)):
            report = self.inspect(data, file_path)

        logger.info(
            f"Deep scan of {file_path.name}: {report.threat_level.value}, "
            f"entropy {report.entropy:.2f}, {len(report.findings)} findings"
        )
        return report

    def inspect(self, data: bytes, file_path: Path) -> ForensicReport:
        """Run every check against an in-memory buffer.

        ``file_path`` is only used for its extension and for reporting.
        """
        file_path = Path(file_path)
        extension = file_path.suffix.lower()
        report = ForensicReport(path=file_path, size=len(data))

        entropy = shannon_entropy(data)
        report.entropy = round(entropy, 2)
        if entropy > self.config.entropy_threshold:
            report.add_finding(
                "Abnormal High Entropy: Potential encrypted payload detected.",
                ThreatLevel.SUSPICIOUS
            )

        if extension in (".jpg", ".jpeg"):
            self._check_jpeg_trailer(data, report)
        elif extension == ".png":
            self._check_png_trailer(data, report)

        self._check_strings(data, report)
        self._check_mime(data, extension, report)

        return report

    def _check_jpeg_trailer(self, data: bytes, report: ForensicReport) -> None:
        end = data.rfind(JPEG_END_MARKER)
        if end == -1:
            return
        trailing = len(data) - end - len(JPEG_END_MARKER)
        if trailing > 0:
            report.add_finding(
                f"Steganography Marker: {trailing} bytes of hidden data found after image end.",
                ThreatLevel.MALICIOUS
            )

    def _check_png_trailer(self, data: bytes, report: ForensicReport) -> None:
        end = data.rfind(PNG_END_CHUNK)
        if end == -1:
            return
        if len(data) - end > PNG_TRAILER_ALLOWANCE:
            report.add_finding(
                "Steganography Marker: Data detected after IEND chunk.",
                ThreatLevel.MALICIOUS
            )

    def _check_strings(self, data: bytes, report: ForensicReport) -> None:
        text = data.decode("utf-8", errors="replace")
        for marker in self.config.suspicious_strings:
            if marker in text:
                report.add_finding(
                    f'Malicious Marker: Suspicious string "{marker}" found in binary.',
                    ThreatLevel.MALICIOUS
                )

    def _check_mime(self, data: bytes, extension: str, report: ForensicReport) -> None:
        magic_instance = self._get_magic()
        if not magic_instance or not data:
            return

        try:
            report.mime_type = magic_instance.from_buffer(data)
        except Exception as e:
            logger.debug(f"MIME detection failed: {e}")
            return

        if report.mime_type in EXECUTABLE_MIME_TYPES and extension not in EXECUTABLE_EXTENSIONS:
            report.add_finding(
                f"MIME Mismatch: Executable content ({report.mime_type}) behind '{extension or 'no'}' extension.",
                ThreatLevel.SUSPICIOUS
            )
