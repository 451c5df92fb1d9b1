"""
Engine Settings
===============

Every tunable of the engine lives in one YAML file, loaded into typed
sections. Missing keys fall back to defaults; holding directories are
checked for writability when the engine starts.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Any, Dict
import os
import tempfile
import yaml
import logging

from barricade.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".barricade"


def _default_sectors() -> Dict[str, Path]:
    """Default monitored sectors for the current user."""
    home = Path.home()
    return {
        "Downloads": home / "Downloads",
        "Documents": home / "Documents",
        "Desktop": home / "Desktop",
        "Pictures": home / "Pictures",
        "Screenshots": home / "Pictures" / "Screenshots",
    }


@dataclass
class ScannerConfig:
    """Directory scanner configuration.

    Attributes:
        sectors: Sector name -> directory to walk on a full scan.
        max_depth: Walk depth for full scans (1 = top level only).
        directory_max_depth: Walk depth for a single-directory scan.
        skip_hidden: Skip entries starting with '.' or '$'.
    """
    sectors: Dict[str, Path] = field(default_factory=_default_sectors)
    max_depth: int = 2
    directory_max_depth: int = 3
    skip_hidden: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScannerConfig":
        """Create ScannerConfig from dictionary."""
        if not data:
            return cls()

        sectors = {
            name: Path(path).expanduser()
            for name, path in (data.get("sectors") or {}).items()
        }

        return cls(
            sectors=sectors or _default_sectors(),
            max_depth=int(data.get("max_depth", 2)),
            directory_max_depth=int(data.get("directory_max_depth", 3)),
            skip_hidden=bool(data.get("skip_hidden", True))
        )


@dataclass
class StoreConfig:
    """Quarantine/vault holding area configuration.

    Attributes:
        quarantine_directory: Holding directory for quarantined files.
        vault_directory: Holding directory for vaulted files.
        restore_conflict: What restore does when the original path is
            occupied: "fail" (raise ConflictError) or "rename" (restore aside).
        history_file: JSON file holding the security score history.
    """
    quarantine_directory: Path = field(default_factory=lambda: DEFAULT_HOME / "Quarantine")
    vault_directory: Path = field(default_factory=lambda: DEFAULT_HOME / "Vault")
    restore_conflict: str = "fail"
    history_file: Path = field(default_factory=lambda: DEFAULT_HOME / "security_history.json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Create StoreConfig from dictionary."""
        if not data:
            return cls()

        defaults = cls()
        restore_conflict = data.get("restore_conflict", defaults.restore_conflict)
        if restore_conflict not in ("fail", "rename"):
            raise ConfigurationError(
                f"Invalid restore_conflict policy: {restore_conflict}",
                config_key="store.restore_conflict",
                expected_type="'fail' or 'rename'"
            )

        return cls(
            quarantine_directory=Path(
                data.get("quarantine_directory", defaults.quarantine_directory)
            ).expanduser(),
            vault_directory=Path(
                data.get("vault_directory", defaults.vault_directory)
            ).expanduser(),
            restore_conflict=restore_conflict,
            history_file=Path(data.get("history_file", defaults.history_file)).expanduser()
        )


@dataclass
class ShredConfig:
    """Secure shredding configuration.

    Attributes:
        passes: Number of random overwrite passes (clamped to 1-7).
        fsync: Flush each pass to disk before the next one.
    """
    passes: int = 3
    fsync: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShredConfig":
        """Create ShredConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            passes=min(max(int(data.get("passes", cls.passes)), 1), 7),
            fsync=bool(data.get("fsync", cls.fsync))
        )


@dataclass
class ForensicConfig:
    """Forensic deep-scan configuration."""
    max_bytes: int = 10 * 1024 * 1024  # 10MB
    entropy_threshold: float = 7.5
    suspicious_strings: List[str] = field(default_factory=lambda: [
        "powershell", "cmd.exe", "http://", "https://", "/tmp/", "eval(", "base64"
    ])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForensicConfig":
        """Create ForensicConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            max_bytes=int(data.get("max_bytes", cls.max_bytes)),
            entropy_threshold=float(data.get("entropy_threshold", cls.entropy_threshold)),
            suspicious_strings=list(data.get("suspicious_strings", cls().suspicious_strings))
        )


@dataclass
class SentryConfig:
    """Proactive sentry configuration.

    Attributes:
        enabled: Whether periodic re-evaluation runs at all.
        interval_minutes: Minutes between ticks.
        native_notifications: Forward new notifications to the desktop.
        screenshot_threshold: Screenshot count above which to alert.
        download_threshold: Unorganized download count above which to alert.
        snooze_minutes: Suppression window after an alert fires or is acted on.
        outbox_size: Number of most recent notifications retained.
        alert_queue_size: Capacity of the channel to the native alert sink.
        watch_for_changes: Request an early tick when a sector changes.
        state_file: JSON file holding the snooze map and outbox between runs.
    """
    enabled: bool = True
    interval_minutes: float = 1.0
    native_notifications: bool = True
    screenshot_threshold: int = 15
    download_threshold: int = 10
    snooze_minutes: float = 30.0
    outbox_size: int = 3
    alert_queue_size: int = 16
    watch_for_changes: bool = False
    state_file: Path = field(default_factory=lambda: DEFAULT_HOME / "sentry_state.json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentryConfig":
        """Create SentryConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            enabled=bool(data.get("enabled", cls.enabled)),
            interval_minutes=float(data.get("interval_minutes", cls.interval_minutes)),
            native_notifications=bool(data.get("native_notifications", cls.native_notifications)),
            screenshot_threshold=int(data.get("screenshot_threshold", cls.screenshot_threshold)),
            download_threshold=int(data.get("download_threshold", cls.download_threshold)),
            snooze_minutes=float(data.get("snooze_minutes", cls.snooze_minutes)),
            outbox_size=int(data.get("outbox_size", cls.outbox_size)),
            alert_queue_size=int(data.get("alert_queue_size", cls.alert_queue_size)),
            watch_for_changes=bool(data.get("watch_for_changes", cls.watch_for_changes)),
            state_file=Path(data.get("state_file", DEFAULT_HOME / "sentry_state.json")).expanduser()
        )


@dataclass
class LoggingSection:
    """Logging settings as stored in the config file."""
    level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: DEFAULT_HOME / "logs")
    json_format: bool = False
    file_output: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSection":
        """Create LoggingSection from dictionary."""
        if not data:
            return cls()
        return cls(
            level=str(data.get("level", cls.level)).upper(),
            log_dir=Path(data.get("log_dir", DEFAULT_HOME / "logs")).expanduser(),
            json_format=bool(data.get("json_format", cls.json_format)),
            file_output=bool(data.get("file_output", cls.file_output))
        )


@dataclass
class Config:
    """All engine settings.

    One attribute per YAML section.
    """
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    shred: ShredConfig = field(default_factory=ShredConfig)
    forensics: ForensicConfig = field(default_factory=ForensicConfig)
    sentry: SentryConfig = field(default_factory=SentryConfig)
    logging: LoggingSection = field(default_factory=LoggingSection)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to the configuration file. If None, looks for
                        ~/.barricade/config.yaml.

        Returns:
            Config instance with loaded settings.

        Raises:
            yaml.YAMLError: If config file is not valid YAML.
        """
        if config_path is None:
            config_path = DEFAULT_HOME / "config.yaml"
        config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Config file not found at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise

        logger.info(f"Loaded configuration from {config_path}")
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            scanner=ScannerConfig.from_dict(data.get("scanner", {})),
            store=StoreConfig.from_dict(data.get("store", {})),
            shred=ShredConfig.from_dict(data.get("shred", {})),
            forensics=ForensicConfig.from_dict(data.get("forensics", {})),
            sentry=SentryConfig.from_dict(data.get("sentry", {})),
            logging=LoggingSection.from_dict(data.get("logging", {}))
        )

    def validate(self) -> None:
        """Ensure both holding directories exist and are writable.

        Raises:
            ConfigurationError: If a holding directory is unusable. This is
                the only error that is fatal at startup.
        """
        for key, directory in (
            ("store.quarantine_directory", self.store.quarantine_directory),
            ("store.vault_directory", self.store.vault_directory),
        ):
            try:
                directory.mkdir(parents=True, exist_ok=True)
                # Real write probe
                fd, probe = tempfile.mkstemp(dir=directory, prefix=".probe-")
                os.close(fd)
                os.unlink(probe)
            except OSError as e:
                raise ConfigurationError(
                    f"Holding directory is not writable: {directory}",
                    config_key=key,
                    cause=e
                )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the configuration.
        """
        data = {
            "scanner": {
                "sectors": {name: str(path) for name, path in self.scanner.sectors.items()},
                "max_depth": self.scanner.max_depth,
                "directory_max_depth": self.scanner.directory_max_depth,
                "skip_hidden": self.scanner.skip_hidden
            },
            "store": {
                "quarantine_directory": str(self.store.quarantine_directory),
                "vault_directory": str(self.store.vault_directory),
                "restore_conflict": self.store.restore_conflict,
                "history_file": str(self.store.history_file)
            },
            "shred": {
                "passes": self.shred.passes,
                "fsync": self.shred.fsync
            },
            "forensics": {
                "max_bytes": self.forensics.max_bytes,
                "entropy_threshold": self.forensics.entropy_threshold,
                "suspicious_strings": self.forensics.suspicious_strings
            },
            "sentry": {
                "enabled": self.sentry.enabled,
                "interval_minutes": self.sentry.interval_minutes,
                "native_notifications": self.sentry.native_notifications,
                "screenshot_threshold": self.sentry.screenshot_threshold,
                "download_threshold": self.sentry.download_threshold,
                "snooze_minutes": self.sentry.snooze_minutes,
                "outbox_size": self.sentry.outbox_size,
                "alert_queue_size": self.sentry.alert_queue_size,
                "watch_for_changes": self.sentry.watch_for_changes,
                "state_file": str(self.sentry.state_file)
            },
            "logging": {
                "level": self.logging.level,
                "log_dir": str(self.logging.log_dir),
                "json_format": self.logging.json_format,
                "file_output": self.logging.file_output
            }
        }

        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration to {config_path}")
