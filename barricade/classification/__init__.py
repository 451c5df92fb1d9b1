"""Classification module for Barricade."""

from .file_record import FileRecord, PrivacyLevel, ThreatLevel
from .rules import Rule
from .threat_classifier import ClassificationResult, ThreatClassifier
from .summary import SecuritySummary, SummaryStatus, summarize

__all__ = [
    "FileRecord",
    "PrivacyLevel",
    "ThreatLevel",
    "Rule",
    "ClassificationResult",
    "ThreatClassifier",
    "SecuritySummary",
    "SummaryStatus",
    "summarize",
]
