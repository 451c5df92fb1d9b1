"""
Unit tests for classification module.
"""

import pytest
from pathlib import Path
from datetime import datetime, timezone

from barricade.classification.file_record import FileRecord, PrivacyLevel, ThreatLevel
from barricade.classification.rules import MB, Rule
from barricade.classification.threat_classifier import ThreatClassifier
from barricade.classification.summary import SummaryStatus, integrity_score, summarize
from barricade.config.categories import FileType, get_file_type


def make_record(name, directory="/home/user/Documents", size=1024, **kwargs):
    """Build an unclassified record without touching the filesystem."""
    path = Path(directory) / name
    extension = path.suffix.lower()
    return FileRecord(
        id=kwargs.pop("id", name),
        name=name,
        path=path,
        size=size,
        extension=extension,
        file_type=get_file_type(extension),
        last_modified=datetime.now(timezone.utc),
        **kwargs
    )


class TestThreatLevels:
    """Tests for threat classification."""

    @pytest.fixture
    def classifier(self):
        return ThreatClassifier()

    @pytest.mark.parametrize("name,directory", [
        ("trojan_dropper.pdf", "/home/user/Documents"),
        ("WannaCry.exe", "/home/user/Downloads"),
        ("keylogger.txt", "/home/user/Desktop"),
        ("rootkit", "/tmp"),
        ("free_adware_remover.zip", "/home/user/Pictures"),
    ])
    def test_malicious_name_wins_everywhere(self, classifier, name, directory):
        """Test malicious names are malicious regardless of extension or location."""
        record = make_record(name, directory)

        assert classifier.classify_threat(record) == ThreatLevel.MALICIOUS

    def test_setup_crack_in_downloads(self, classifier):
        """Test piracy tool in Downloads is suspicious with the right tags."""
        record = make_record("setup_crack.exe", "/home/user/Downloads")

        result = classifier.classify(record)

        assert result.threat_level == ThreatLevel.SUSPICIOUS
        assert "Potential Piracy Tool" in result.tags
        assert "Executable" in result.tags
        assert result.threat_type == "PUP:Win32/Keygen"

    def test_malicious_takes_priority_over_suspicious(self, classifier):
        """Test first matching rule wins and levels are never merged."""
        record = make_record("virus_keygen.exe", "/home/user/Downloads")

        result = classifier.classify(record)

        assert result.threat_level == ThreatLevel.MALICIOUS
        assert result.threat_type == "Malware:Generic/Suspicious"

    def test_executable_in_temp_location(self, classifier):
        """Test .exe under a Temp directory is suspicious."""
        record = make_record("update.exe", "/home/user/AppData/Local/Temp")

        result = classifier.classify(record)

        assert result.threat_level == ThreatLevel.SUSPICIOUS
        assert result.threat_type == "Suspicious:Temp/Executable"

    def test_windows_separators_in_location(self, classifier):
        """Test suspicious locations match backslash paths too."""
        record = make_record("svc.exe", "/mnt/c/ProgramData")
        windows = make_record(r"C:\Users\Public\svc.exe", "")

        assert classifier.classify_threat(record) == ThreatLevel.SUSPICIOUS
        assert classifier.classify_threat(windows) == ThreatLevel.SUSPICIOUS

    def test_downloaded_executable_is_suspicious(self, classifier):
        """Test risky executable extensions under a download path."""
        downloaded = make_record("installer.msi", "/home/user/Downloads")
        elsewhere = make_record("installer.msi", "/home/user/Documents")

        assert classifier.classify_threat(downloaded) == ThreatLevel.SUSPICIOUS
        assert classifier.classify_threat(elsewhere) == ThreatLevel.SAFE

    def test_double_extension(self, classifier):
        """Test double extensions are flagged and labelled."""
        record = make_record("report.exe.txt")

        result = classifier.classify(record)

        assert result.threat_level == ThreatLevel.SUSPICIOUS
        assert result.threat_type == "Trojan:Generic/DoubleExt"
        assert "Double Extension" in result.tags

    def test_dangerous_extension(self, classifier):
        """Test screensaver executables are suspicious."""
        assert classifier.classify_threat(make_record("holiday.scr")) == ThreatLevel.SUSPICIOUS

    def test_safe_file(self, classifier):
        """Test an ordinary file is safe with no threat label."""
        result = classifier.classify(make_record("holiday_photo.jpg", "/home/user/Pictures"))

        assert result.threat_level == ThreatLevel.SAFE
        assert result.threat_type is None
        assert result.privacy_level == PrivacyLevel.PUBLIC


class TestPrivacyLevels:
    """Tests for privacy classification."""

    @pytest.fixture
    def classifier(self):
        return ThreatClassifier()

    def test_id_rsa_is_critical(self, classifier):
        """Test an extensionless private key is critical."""
        record = make_record("id_rsa", "/home/user/.ssh")

        assert record.extension == ""
        assert classifier.classify_privacy(record) == PrivacyLevel.CRITICAL

    @pytest.mark.parametrize("name", ["bundle.p12", "store.pfx", "login.keychain", "vault.kdbx"])
    def test_key_extensions_are_critical(self, classifier, name):
        """Test key/certificate extensions are critical without a name match."""
        assert classifier.classify_privacy(make_record(name)) == PrivacyLevel.CRITICAL

    @pytest.mark.parametrize("name", ["passwords.txt", "api_key.json", "credit_card.png", "bank_details.csv"])
    def test_critical_names(self, classifier, name):
        assert classifier.classify_privacy(make_record(name)) == PrivacyLevel.CRITICAL

    @pytest.mark.parametrize("name", ["medical_records.pdf", "nda_acme.docx", "payroll_march.xlsx", "db_dump.sql"])
    def test_sensitive_names(self, classifier, name):
        assert classifier.classify_privacy(make_record(name)) == PrivacyLevel.SENSITIVE

    def test_financial_office_document(self, classifier):
        """Test office documents with tax keywords are sensitive."""
        assert classifier.classify_privacy(make_record("tax_2023.xlsx")) == PrivacyLevel.SENSITIVE
        assert classifier.classify_privacy(make_record("tax_2023.txt")) == PrivacyLevel.PUBLIC

    def test_critical_beats_sensitive(self, classifier):
        """Test a name matching both sets is critical."""
        record = make_record("personal_passwords_backup.txt")

        assert classifier.classify_privacy(record) == PrivacyLevel.CRITICAL


class TestTags:
    """Tests for descriptive tags."""

    @pytest.fixture
    def classifier(self):
        return ThreatClassifier()

    def test_size_tags(self, classifier):
        """Test size threshold tags."""
        large = classifier.tags(make_record("movie.mkv", size=150 * MB))
        huge = classifier.tags(make_record("disk.iso", size=1500 * MB))

        assert large == {"Large File"}
        assert {"Large File", "Very Large"} <= huge

    def test_keyword_tags(self, classifier):
        assert "Screenshot" in classifier.tags(make_record("Screenshot 2024-01-02.png"))
        assert "Screenshot" in classifier.tags(make_record("screen_cap.png"))
        assert "Backup File" in classifier.tags(make_record("settings.bak"))
        assert "Financial Data" in classifier.tags(make_record("bank_export.csv"))
        assert "Contains Credentials" in classifier.tags(make_record("credentials.json"))

    def test_archive_tag(self, classifier):
        assert classifier.tags(make_record("photos.zip")) == {"Archive"}

    def test_no_tags(self, classifier):
        assert classifier.tags(make_record("notes.txt")) == set()


class TestThreatClassifier:
    """Tests for classifier behaviour around rule tables."""

    def test_custom_rule_table(self):
        """Test rule tables are data and can be replaced."""
        classifier = ThreatClassifier(threat_rules=[
            Rule("empty-file", lambda r: r.size == 0, ThreatLevel.SUSPICIOUS),
        ])

        assert classifier.classify_threat(make_record("blank.txt", size=0)) == ThreatLevel.SUSPICIOUS
        # Default tables no longer apply
        assert classifier.classify_threat(make_record("trojan.exe")) == ThreatLevel.SAFE

    def test_classify_does_not_mutate(self):
        """Test classify is pure."""
        record = make_record("trojan.exe")

        ThreatClassifier().classify(record)

        assert record.threat_level == ThreatLevel.SAFE
        assert record.tags == set()

    def test_apply_updates_record(self):
        """Test apply writes verdicts and keeps existing tags."""
        record = make_record("setup_crack.exe", "/home/user/Downloads", tags={"Pinned"})

        returned = ThreatClassifier().apply(record)

        assert returned is record
        assert record.threat_level == ThreatLevel.SUSPICIOUS
        assert record.threat_type == "PUP:Win32/Keygen"
        assert {"Pinned", "Executable"} <= record.tags

    def test_analyze(self):
        records = ThreatClassifier().analyze([make_record("a.txt"), make_record("worm.js")])

        assert [r.threat_level for r in records] == [ThreatLevel.SAFE, ThreatLevel.MALICIOUS]

    def test_file_type_mapping(self):
        assert make_record("a.exe").file_type == FileType.EXECUTABLE
        assert make_record("a.unknown").file_type == FileType.OTHER


class TestSummary:
    """Tests for the integrity summary."""

    def _classified(self, *names):
        return ThreatClassifier().analyze([make_record(n, id=str(i)) for i, n in enumerate(names)])

    def test_empty_set_is_protected(self):
        summary = summarize([])

        assert summary.total_files == 0
        assert summary.integrity_score == 100
        assert summary.status == SummaryStatus.PROTECTED

    def test_counts_and_score(self):
        """Test counts and the weighted score."""
        records = self._classified("trojan.exe", "hack_tool.zip", "passwords.txt", "invoice.pdf", "notes.txt")

        summary = summarize(records)

        assert summary.total_files == 5
        assert summary.malicious_count == 1
        assert summary.suspicious_count == 1
        assert summary.critical_privacy_count == 1
        assert summary.sensitive_privacy_count == 1
        assert summary.integrity_score == 100 - 25 - 5 - 10 - 2
        assert summary.status == SummaryStatus.ALERT

    def test_warning_status(self):
        summary = summarize(self._classified("keygen.zip"))

        assert summary.status == SummaryStatus.WARNING
        assert summary.integrity_score == 95

    def test_score_clamped(self):
        summary = summarize(self._classified(*[f"virus_{i}.exe" for i in range(6)]))

        assert summary.integrity_score == 0
        assert summary.to_dict()["status"] == "alert"

    def test_score_monotonic_and_bounded(self):
        """Test score never increases as any count grows and stays in range."""
        for counts in [(0, 0, 0, 0), (1, 2, 0, 3), (0, 5, 4, 0), (3, 0, 1, 60)]:
            base = integrity_score(*counts)
            assert 0 <= base <= 100
            for i in range(4):
                bumped = list(counts)
                bumped[i] += 1
                assert integrity_score(*bumped) <= base
