"""
Classification Rules
====================

Ordered rule tables for threat, privacy, tag and threat-type heuristics.

Each table is plain data: a sequence of (predicate, label) rules evaluated
top to bottom. Level and threat-type tables stop at the first match; the
tag table applies every rule. New rules are added by editing the tables,
not the classifier.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from barricade.classification.file_record import FileRecord, PrivacyLevel, ThreatLevel

Predicate = Callable[[FileRecord], bool]

MB = 1024 * 1024


@dataclass(frozen=True)
class Rule:
    """One entry of a rule table.

    Attributes:
        name: Short identifier, used in logs and tests.
        predicate: Test applied to a file record.
        label: Result produced when the predicate holds.
    """
    name: str
    predicate: Predicate
    label: Any

    def matches(self, record: FileRecord) -> bool:
        return self.predicate(record)


def first_match(rules: Sequence[Rule], record: FileRecord) -> Optional[Rule]:
    """Return the first rule whose predicate holds, or None."""
    for rule in rules:
        if rule.matches(record):
            return rule
    return None


# =====================
# Predicate builders
# =====================

def _compile(patterns: Iterable[str]) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def name_matches(pattern: re.Pattern) -> Predicate:
    return lambda record: bool(pattern.search(record.name))


def path_matches(pattern: re.Pattern) -> Predicate:
    return lambda record: bool(pattern.search(str(record.path)))


def extension_in(extensions: FrozenSet[str]) -> Predicate:
    return lambda record: record.extension.lower() in extensions


def size_over(limit: int) -> Predicate:
    return lambda record: record.size > limit


def all_of(*predicates: Predicate) -> Predicate:
    return lambda record: all(p(record) for p in predicates)


# =====================
# Pattern sets
# =====================

# Known malware family and category names
MALICIOUS_PATTERNS = _compile([
    r"trojan|malware|virus|ransomware|worm",
    r"cryptolocker|wannacry|petya|locky",
    r"keylog|spyware|adware|rootkit",
    r"fakealert|rogue|scareware",
])

# Piracy/hacking tools, double and dangerous extensions, temp executables
SUSPICIOUS_PATTERNS = _compile([
    r"crack|keygen|patch|activator|loader",
    r"hack|cheat|exploit|bypass",
    r"\.exe\.txt$|\.pdf\.exe$|\.doc\.exe$",
    r"\.scr$|\.pif$|\.com$",
    r"temp.*\.exe$",
    r"setup.*crack",
])

# Executables dropped in temp/shared locations (either path separator)
SUSPICIOUS_LOCATIONS = _compile([
    r"[\\/]AppData[\\/]Local[\\/]Temp[\\/].*\.exe$",
    r"[\\/]Temp[\\/].*\.exe$",
    r"[\\/]ProgramData[\\/].*\.exe$",
    r"[\\/]Users[\\/]Public[\\/].*\.exe$",
])

PRIVACY_CRITICAL_PATTERNS = _compile([
    r"password|passwd|credential|secret",
    r"apikey|api_key|api-key|token",
    r"\.kdbx$|\.key$|id_rsa|\.pem$",
    r"bank|ssn|social.?security|taxreturn",
    r"credit.?card|cvv|pin.?code",
    r"private.?key|secret.?key",
])

PRIVACY_SENSITIVE_PATTERNS = _compile([
    r"medical|health|insurance|hipaa",
    r"legal|contract|agreement|nda",
    r"payroll|salary|compensation|w2|1099",
    r"invoice|receipt|statement",
    r"personal|private|confidential",
    r"backup|export|dump",
])

KEY_EXTENSIONS = frozenset({".pem", ".key", ".pfx", ".p12", ".kdbx", ".keychain"})
OFFICE_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".xls", ".xlsx"})
RISKY_EXECUTABLE_EXTENSIONS = frozenset({".exe", ".msi", ".bat", ".cmd", ".ps1", ".vbs", ".js"})
TAGGED_EXECUTABLE_EXTENSIONS = frozenset({".exe", ".msi"})
TAGGED_ARCHIVE_EXTENSIONS = frozenset({".zip", ".rar", ".7z", ".tar", ".gz"})

_DOWNLOAD_SEGMENT = re.compile(r"download", re.IGNORECASE)
_FINANCIAL_KEYWORDS = re.compile(r"tax|financial|statement", re.IGNORECASE)


def _in_suspicious_location(record: FileRecord) -> bool:
    return any(p.search(str(record.path)) for p in SUSPICIOUS_LOCATIONS)


# =====================
# Rule tables
# =====================

THREAT_RULES: List[Rule] = (
    [Rule(f"malicious-name-{i}", name_matches(p), ThreatLevel.MALICIOUS)
     for i, p in enumerate(MALICIOUS_PATTERNS)]
    + [Rule("exe-in-suspicious-location",
            all_of(lambda r: r.extension == ".exe", _in_suspicious_location),
            ThreatLevel.SUSPICIOUS)]
    + [Rule(f"suspicious-name-{i}", name_matches(p), ThreatLevel.SUSPICIOUS)
       for i, p in enumerate(SUSPICIOUS_PATTERNS)]
    + [Rule("downloaded-executable",
            all_of(extension_in(RISKY_EXECUTABLE_EXTENSIONS), path_matches(_DOWNLOAD_SEGMENT)),
            ThreatLevel.SUSPICIOUS)]
)

PRIVACY_RULES: List[Rule] = (
    [Rule(f"critical-name-{i}", name_matches(p), PrivacyLevel.CRITICAL)
     for i, p in enumerate(PRIVACY_CRITICAL_PATTERNS)]
    + [Rule("key-or-certificate", extension_in(KEY_EXTENSIONS), PrivacyLevel.CRITICAL)]
    + [Rule(f"sensitive-name-{i}", name_matches(p), PrivacyLevel.SENSITIVE)
       for i, p in enumerate(PRIVACY_SENSITIVE_PATTERNS)]
    + [Rule("financial-office-document",
            all_of(extension_in(OFFICE_EXTENSIONS), name_matches(_FINANCIAL_KEYWORDS)),
            PrivacyLevel.SENSITIVE)]
)

TAG_RULES: List[Rule] = [
    Rule("large", size_over(100 * MB), "Large File"),
    Rule("very-large", size_over(1000 * MB), "Very Large"),
    Rule("credentials", name_matches(re.compile(r"password|credential", re.I)), "Contains Credentials"),
    Rule("financial", name_matches(re.compile(r"bank|financial", re.I)), "Financial Data"),
    Rule("screenshot", name_matches(re.compile(r"screenshot|screen.?cap", re.I)), "Screenshot"),
    Rule("backup", name_matches(re.compile(r"backup|bak$", re.I)), "Backup File"),
    Rule("executable", extension_in(TAGGED_EXECUTABLE_EXTENSIONS), "Executable"),
    Rule("archive", extension_in(TAGGED_ARCHIVE_EXTENSIONS), "Archive"),
    Rule("piracy-tool", name_matches(re.compile(r"crack|keygen|patch", re.I)), "Potential Piracy Tool"),
    Rule("double-extension", name_matches(re.compile(r"\.exe\..*$", re.I)), "Double Extension"),
]

THREAT_TYPE_RULES: List[Rule] = [
    Rule("malware-name",
         lambda r: any(p.search(r.name) for p in MALICIOUS_PATTERNS),
         "Malware:Generic/Suspicious"),
    Rule("keygen", name_matches(re.compile(r"crack|keygen", re.I)), "PUP:Win32/Keygen"),
    Rule("double-extension", name_matches(re.compile(r"\.exe\.", re.I)), "Trojan:Generic/DoubleExt"),
    Rule("temp-executable",
         lambda r: "temp" in str(r.path).lower() and r.name.endswith(".exe"),
         "Suspicious:Temp/Executable"),
]
