"""
Security Summary
================

Aggregates a classified working set into an integrity score and status.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable

from barricade.classification.file_record import FileRecord, PrivacyLevel, ThreatLevel

# Score penalty per file at each risk level
MALICIOUS_PENALTY = 25
SUSPICIOUS_PENALTY = 5
CRITICAL_PRIVACY_PENALTY = 10
SENSITIVE_PRIVACY_PENALTY = 2


class SummaryStatus(Enum):
    PROTECTED = "protected"
    WARNING = "warning"
    ALERT = "alert"


@dataclass
class SecuritySummary:
    """Counts, score and status for one working set."""
    total_files: int = 0
    malicious_count: int = 0
    suspicious_count: int = 0
    critical_privacy_count: int = 0
    sensitive_privacy_count: int = 0
    integrity_score: int = 100
    status: SummaryStatus = SummaryStatus.PROTECTED

    @property
    def threat_count(self) -> int:
        return self.malicious_count + self.suspicious_count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "totalFiles": self.total_files,
            "maliciousCount": self.malicious_count,
            "suspiciousCount": self.suspicious_count,
            "criticalPrivacyCount": self.critical_privacy_count,
            "sensitivePrivacyCount": self.sensitive_privacy_count,
            "integrityScore": self.integrity_score,
            "status": self.status.value,
        }


def integrity_score(
    malicious: int,
    suspicious: int,
    critical_privacy: int,
    sensitive_privacy: int
) -> int:
    """Compute the 0-100 integrity score from risk counts."""
    score = (
        100
        - MALICIOUS_PENALTY * malicious
        - SUSPICIOUS_PENALTY * suspicious
        - CRITICAL_PRIVACY_PENALTY * critical_privacy
        - SENSITIVE_PRIVACY_PENALTY * sensitive_privacy
    )
    return max(0, min(100, score))


def summarize(records: Iterable[FileRecord]) -> SecuritySummary:
    """Summarize a classified working set.

    Args:
        records: Classified file records.

    Returns:
        SecuritySummary with counts, integrity score and status.
    """
    summary = SecuritySummary()

    for record in records:
        summary.total_files += 1
        if record.threat_level == ThreatLevel.MALICIOUS:
            summary.malicious_count += 1
        elif record.threat_level == ThreatLevel.SUSPICIOUS:
            summary.suspicious_count += 1

        if record.privacy_level == PrivacyLevel.CRITICAL:
            summary.critical_privacy_count += 1
        elif record.privacy_level == PrivacyLevel.SENSITIVE:
            summary.sensitive_privacy_count += 1

    summary.integrity_score = integrity_score(
        summary.malicious_count,
        summary.suspicious_count,
        summary.critical_privacy_count,
        summary.sensitive_privacy_count,
    )

    if summary.malicious_count > 0:
        summary.status = SummaryStatus.ALERT
    elif summary.suspicious_count > 0:
        summary.status = SummaryStatus.WARNING

    return summary
