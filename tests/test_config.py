"""
Unit tests for configuration module.
"""

import pytest
import tempfile
from pathlib import Path

from barricade.config.settings import (
    Config,
    ScannerConfig,
    StoreConfig,
    ShredConfig,
    ForensicConfig,
    SentryConfig,
    LoggingSection,
)
from barricade.config.categories import SectorType, get_sector_type
from barricade.utils.exceptions import ConfigurationError, ErrorCode


class TestScannerConfig:
    """Tests for ScannerConfig."""

    def test_default_values(self):
        """Test default configuration values."""
        config = ScannerConfig()

        assert config.max_depth == 2
        assert config.directory_max_depth == 3
        assert config.skip_hidden is True
        assert "Downloads" in config.sectors
        assert config.sectors["Screenshots"].name == "Screenshots"

    def test_from_dict(self):
        """Test creating config from dictionary."""
        config = ScannerConfig.from_dict({
            "sectors": {"Work": "/srv/work"},
            "max_depth": 4,
            "skip_hidden": False,
        })

        assert config.sectors == {"Work": Path("/srv/work")}
        assert config.max_depth == 4
        assert config.directory_max_depth == 3
        assert config.skip_hidden is False

    def test_from_empty_dict(self):
        """Test creating config from empty dictionary uses defaults."""
        config = ScannerConfig.from_dict({})

        assert config.max_depth == 2


class TestStoreConfig:
    """Tests for StoreConfig."""

    def test_default_values(self):
        config = StoreConfig()

        assert config.restore_conflict == "fail"
        assert config.quarantine_directory.name == "Quarantine"
        assert config.vault_directory.name == "Vault"

    def test_rename_policy(self):
        config = StoreConfig.from_dict({"restore_conflict": "rename"})

        assert config.restore_conflict == "rename"

    def test_invalid_policy(self):
        """Test an unknown restore policy is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            StoreConfig.from_dict({"restore_conflict": "overwrite"})

        assert exc_info.value.error_code == ErrorCode.CONFIGURATION_ERROR


class TestShredConfig:
    """Tests for ShredConfig."""

    def test_passes_clamped(self):
        """Test pass count is clamped to the supported range."""
        assert ShredConfig.from_dict({"passes": 0}).passes == 1
        assert ShredConfig.from_dict({"passes": 50}).passes == 7
        assert ShredConfig.from_dict({"passes": 5}).passes == 5


class TestSentryConfig:
    """Tests for SentryConfig."""

    def test_default_values(self):
        config = SentryConfig()

        assert config.enabled is True
        assert config.interval_minutes == 1.0
        assert config.screenshot_threshold == 15
        assert config.download_threshold == 10
        assert config.snooze_minutes == 30.0
        assert config.outbox_size == 3
        assert config.alert_queue_size == 16

    def test_from_dict(self):
        config = SentryConfig.from_dict({
            "enabled": False,
            "interval_minutes": 5,
            "screenshot_threshold": 20,
        })

        assert config.enabled is False
        assert config.interval_minutes == 5.0
        assert config.screenshot_threshold == 20
        assert config.download_threshold == 10


class TestConfig:
    """Tests for main Config class."""

    def test_default_config(self):
        """Test default configuration."""
        config = Config()

        assert isinstance(config.scanner, ScannerConfig)
        assert isinstance(config.store, StoreConfig)
        assert isinstance(config.forensics, ForensicConfig)
        assert isinstance(config.sentry, SentryConfig)
        assert isinstance(config.logging, LoggingSection)
        assert config.forensics.entropy_threshold == 7.5

    def test_load_nonexistent_file(self):
        """Test loading from nonexistent file returns defaults."""
        config = Config.load(Path("/nonexistent/path/config.yaml"))

        assert config.sentry.outbox_size == 3

    def test_save_and_load(self):
        """Test saving and loading configuration."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"

            config = Config()
            config.scanner.max_depth = 5
            config.store.restore_conflict = "rename"
            config.store.quarantine_directory = Path(tmpdir) / "q"
            config.sentry.screenshot_threshold = 40
            config.forensics.suspicious_strings = ["mimikatz"]
            config.save(config_path)

            loaded = Config.load(config_path)

            assert loaded.scanner.max_depth == 5
            assert loaded.store.restore_conflict == "rename"
            assert loaded.store.quarantine_directory == Path(tmpdir) / "q"
            assert loaded.sentry.screenshot_threshold == 40
            assert loaded.forensics.suspicious_strings == ["mimikatz"]

    def test_validate_creates_holding_directories(self):
        """Test validate creates missing holding directories."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config = Config()
            config.store.quarantine_directory = Path(tmpdir) / "a" / "Quarantine"
            config.store.vault_directory = Path(tmpdir) / "b" / "Vault"

            config.validate()

            assert config.store.quarantine_directory.is_dir()
            assert config.store.vault_directory.is_dir()

    def test_validate_unusable_directory(self):
        """Test a holding directory blocked by a file is fatal."""
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "blocker"
            blocker.write_text("not a directory")

            config = Config()
            config.store.quarantine_directory = blocker / "Quarantine"
            config.store.vault_directory = Path(tmpdir) / "Vault"

            with pytest.raises(ConfigurationError) as exc_info:
                config.validate()

            assert exc_info.value.details["config_key"] == "store.quarantine_directory"


class TestSectorInference:
    """Tests for sector inference from paths."""

    @pytest.mark.parametrize("directory,sector", [
        ("/home/user/Downloads", SectorType.DOWNLOADS),
        ("/home/user/Pictures/Screenshots", SectorType.SCREENSHOTS),
        ("/home/user/Documents/taxes", SectorType.DOCUMENTS),
        ("/home/user/Desktop", SectorType.DESKTOP),
        ("/home/user/Pictures", SectorType.PICTURES),
        ("/srv/data", SectorType.OTHER),
    ])
    def test_get_sector_type(self, directory, sector):
        assert get_sector_type(directory) == sector
