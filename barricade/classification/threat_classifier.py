"""
Threat Classifier
=================

Heuristic threat/privacy classification of file records.

Evaluates the ordered rule tables from ``rules.py``:
threat and privacy levels and the threat-type label take the first
matching rule, tags are the union of every matching rule.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from barricade.classification.file_record import FileRecord, PrivacyLevel, ThreatLevel
from barricade.classification.rules import (
    PRIVACY_RULES,
    THREAT_RULES,
    THREAT_TYPE_RULES,
    TAG_RULES,
    Rule,
    first_match,
)
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ClassificationResult:
    """Result of classifying one file.

    Attributes:
        threat_level: Threat verdict.
        privacy_level: Privacy verdict.
        threat_type: Human-facing threat label, if any rule fired.
        tags: Descriptive tags.
    """
    threat_level: ThreatLevel = ThreatLevel.SAFE
    privacy_level: PrivacyLevel = PrivacyLevel.PUBLIC
    threat_type: Optional[str] = None
    tags: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "threatLevel": self.threat_level.value,
            "privacyLevel": self.privacy_level.value,
            "threatType": self.threat_type,
            "tags": sorted(self.tags),
        }


class ThreatClassifier:
    """Pure rule-table classifier.

    The classifier holds no state between calls; custom tables can be
    passed in to extend or replace the defaults.
    """

    def __init__(
        self,
        threat_rules: Optional[Sequence[Rule]] = None,
        privacy_rules: Optional[Sequence[Rule]] = None,
        tag_rules: Optional[Sequence[Rule]] = None,
        threat_type_rules: Optional[Sequence[Rule]] = None
    ):
        """Initialize the classifier.

        Args:
            threat_rules: Ordered threat-level table.
            privacy_rules: Ordered privacy-level table.
            tag_rules: Tag table (all matching rules apply).
            threat_type_rules: Ordered threat-type label table.
        """
        self.threat_rules = list(threat_rules if threat_rules is not None else THREAT_RULES)
        self.privacy_rules = list(privacy_rules if privacy_rules is not None else PRIVACY_RULES)
        self.tag_rules = list(tag_rules if tag_rules is not None else TAG_RULES)
        self.threat_type_rules = list(
            threat_type_rules if threat_type_rules is not None else THREAT_TYPE_RULES
        )

    def classify_threat(self, record: FileRecord) -> ThreatLevel:
        rule = first_match(self.threat_rules, record)
        return rule.label if rule else ThreatLevel.SAFE

    def classify_privacy(self, record: FileRecord) -> PrivacyLevel:
        rule = first_match(self.privacy_rules, record)
        return rule.label if rule else PrivacyLevel.PUBLIC

    def tags(self, record: FileRecord) -> Set[str]:
        return {rule.label for rule in self.tag_rules if rule.matches(record)}

    def threat_type(self, record: FileRecord) -> Optional[str]:
        rule = first_match(self.threat_type_rules, record)
        return rule.label if rule else None

    def classify(self, record: FileRecord) -> ClassificationResult:
        """Classify a record without modifying it.

        Args:
            record: File record to classify.

        Returns:
            ClassificationResult with levels, label and tags.
        """
        result = ClassificationResult(
            threat_level=self.classify_threat(record),
            privacy_level=self.classify_privacy(record),
            threat_type=self.threat_type(record),
            tags=self.tags(record),
        )

        if result.threat_level != ThreatLevel.SAFE:
            logger.debug(
                f"Flagged {record.name}: {result.threat_level.value}"
                f" ({result.threat_type or 'unlabelled'})"
            )

        return result

    def apply(self, record: FileRecord) -> FileRecord:
        """Classify a record and write the verdicts onto it.

        Tags are added to any the record already carries.

        Returns:
            The same record, updated in place.
        """
        result = self.classify(record)
        record.threat_level = result.threat_level
        record.privacy_level = result.privacy_level
        record.threat_type = result.threat_type
        record.tags |= result.tags
        return record

    def analyze(self, records: Iterable[FileRecord]) -> List[FileRecord]:
        """Apply classification to every record in a working set."""
        return [self.apply(record) for record in records]
