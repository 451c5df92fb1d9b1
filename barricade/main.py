"""
Barricade - Main Application
============================

Engine facade and command-line entry point.

``BarricadeEngine`` wires scanner, classifier, holding areas, shredder,
forensics and sentry together and exposes the operations the external
command layer uses. Every per-operation failure comes back as an
``OperationResult``; only invalid configuration at startup raises.
"""

import json
import signal
import sys
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

import yaml

from barricade.actions import (
    Action,
    ActionExecutor,
    ActionResult,
    DispositionKind,
    DispositionRecord,
    DispositionStore,
    FileOperations,
    OperationResult,
    SecurityHistory,
    SettingsPatch,
)
from barricade.classification import (
    ClassificationResult,
    FileRecord,
    SecuritySummary,
    ThreatClassifier,
    summarize,
)
from barricade.config import Config
from barricade.forensics import DeepScanner
from barricade.monitoring import (
    AlertDispatcher,
    JsonSentryStateStore,
    SectorWatcherService,
    SentryScheduler,
    SentryStateStore,
)
from barricade.scanning import DirectoryScanner
from barricade.security import ContentHasher, PathLockRegistry, ShredEngine
from barricade.utils.exceptions import BarricadeError, ConfigurationError, ErrorCode, FileAccessError
from barricade.utils.logging_config import setup_logging, get_logger, operation_scope, LoggingConfig
from barricade.utils.notifications import DesktopNotifier, NotificationConfig

logger = get_logger(__name__)


class BarricadeEngine:
    """Main orchestrator for Barricade.

    Coordinates scanning, classification, dispositions, forensic
    inspection and the proactive sentry.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        config_path: Optional[Path] = None,
        notifier=None,
        state_store: Optional[SentryStateStore] = None
    ):
        """Initialize the engine.

        Args:
            config: Configuration; loaded from ``config_path`` if None.
            config_path: YAML file settings are loaded from and saved to.
            notifier: Native alert sink (default: DesktopNotifier).
            state_store: Sentry state persistence (default: JSON file).

        Raises:
            ConfigurationError: If the holding directories are unusable.
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = config or Config.load(self.config_path)
        self.config.validate()

        self._init_components(notifier, state_store)

    def _init_components(self, notifier, state_store: Optional[SentryStateStore]) -> None:
        """Initialize all components."""
        config = self.config

        # Shared single-writer discipline for every disposition
        self.locks = PathLockRegistry()

        # Classification and scanning
        self.classifier = ThreatClassifier()
        self.scanner = DirectoryScanner(config.scanner, self.classifier, self.locks)

        # Dispositions
        self.hasher = ContentHasher()
        self.store = DispositionStore(config.store, self.hasher, self.locks)
        self.shredder = ShredEngine(config.shred.passes, config.shred.fsync, self.locks)
        self.file_ops = FileOperations(self.locks)
        self.forensics = DeepScanner(config.forensics)

        # History tracking
        self.history = SecurityHistory(config.store.history_file)

        # Sentry: own scanner so background walks never share scan state
        self.notifier = notifier or DesktopNotifier(
            NotificationConfig(enabled=config.sentry.native_notifications)
        )
        self.dispatcher = AlertDispatcher(self.notifier, config.sentry.alert_queue_size)
        self.sentry = SentryScheduler(
            DirectoryScanner(config.scanner, self.classifier, self.locks),
            config.sentry,
            state_store or JsonSentryStateStore(config.sentry.state_file),
            self.dispatcher,
        )
        self.watcher: Optional[SectorWatcherService] = None
        if config.sentry.watch_for_changes:
            self.watcher = SectorWatcherService(
                config.scanner.sectors.values(), self.sentry.request_tick
            )

        self.executor = ActionExecutor(self)

        logger.info("All components initialized")

    # =====================
    # Scanning
    # =====================

    def scan_all(self) -> List[FileRecord]:
        """Scan every sector and record the resulting score."""
        records = self.scanner.scan_all()
        summary = summarize(records)

        try:
            self.history.record(summary)
        except OSError as e:
            logger.warning(f"Could not record security history: {e}")

        logger.info(
            f"Scan complete: {summary.total_files} files, "
            f"score {summary.integrity_score} ({summary.status.value})"
        )
        return records

    def scan_directory(self, directory: Path) -> List[FileRecord]:
        return self.scanner.scan_directory(directory)

    def scan_one(self, path: Path) -> OperationResult:
        return self._run("scan_one", self.scanner.scan_one, path)

    def rescan(self, sector: Optional[str] = None) -> OperationResult:
        """Rescan all sectors, or the sector named ``sector``."""
        if sector is None:
            records = self.scan_all()
            return OperationResult(True, f"Scanned {len(records)} files", records)

        directory = self.config.scanner.sectors.get(sector)
        if directory is None:
            return OperationResult.failure(f"Unknown sector: {sector}", ErrorCode.SCAN_FAILED)

        records = self.scan_directory(directory)
        return OperationResult(True, f"Scanned {len(records)} files in {sector}", records)

    def classify(self, record: FileRecord) -> ClassificationResult:
        return self.classifier.classify(record)

    def summarize(self, records: Iterable[FileRecord]) -> SecuritySummary:
        return summarize(records)

    # =====================
    # Dispositions
    # =====================

    def quarantine(self, path: Path, reason: str = "Manual quarantine request.") -> OperationResult:
        return self._run(
            "quarantine", self.store.place, path, reason, DispositionKind.QUARANTINE,
            message=f"Quarantined {Path(path).name}"
        )

    def vault(self, path: Path, reason: str = "Securing sensitive data.") -> OperationResult:
        return self._run(
            "vault", self.store.place, path, reason, DispositionKind.VAULT,
            message=f"Vaulted {Path(path).name}"
        )

    def restore_quarantine(self, record_id: str) -> OperationResult:
        return self._run(
            "restore_quarantine", self.store.restore, record_id, DispositionKind.QUARANTINE,
            message=f"Restored {record_id}"
        )

    def restore_vault(self, record_id: str) -> OperationResult:
        return self._run(
            "restore_vault", self.store.restore, record_id, DispositionKind.VAULT,
            message=f"Restored {record_id}"
        )

    def list_quarantine(self) -> List[DispositionRecord]:
        return self.store.list(DispositionKind.QUARANTINE)

    def list_vault(self) -> List[DispositionRecord]:
        return self.store.list(DispositionKind.VAULT)

    def shred(self, path: Path) -> OperationResult:
        result = self._run("shred", self.shredder.shred, path, message=f"Shredded {Path(path).name}")
        if result.success:
            result.message = f"{result.message}. {result.data.caveat}"
        return result

    def delete(self, path: Path) -> OperationResult:
        return self._run("delete", self.shredder.trash, path, message=f"Moved {Path(path).name} to trash")

    def deep_scan(self, path: Path) -> OperationResult:
        result = self._run("deep_scan", self.forensics.scan, path)
        if result.success:
            report = result.data
            result.message = (
                f"Forensic results for {Path(path).name}: Entropy {report.entropy:.2f}. "
                f"Findings: {'; '.join(report.findings) or 'none'}"
            )
        return result

    def organize(self, paths: Iterable[Path], category: Optional[str] = None) -> OperationResult:
        results = self.file_ops.organize(paths, category)
        moved = sum(1 for r in results if r.success)
        return OperationResult(
            success=moved == len(results),
            message=f"Organized {moved}/{len(results)} files",
            data=results,
            error_code=None if moved == len(results) else ErrorCode.MOVE_FAILED.name,
        )

    # =====================
    # Commands and settings
    # =====================

    def execute(self, action: Action, files: Iterable[FileRecord] = ()) -> ActionResult:
        return self.executor.execute(action, files)

    def update_settings(self, patch: SettingsPatch) -> OperationResult:
        """Apply a sentry settings patch and persist it if a config file is in use."""
        try:
            with self.sentry.context.lock:
                changes = patch.apply(self.sentry.settings)
        except ConfigurationError as e:
            return self._failed("update_settings", e)

        if self.config_path:
            try:
                self.config.save(self.config_path)
            except OSError as e:
                return OperationResult.failure(
                    f"Settings applied but not saved: {e.strerror or e}",
                    ErrorCode.CONFIGURATION_ERROR,
                    data=changes,
                )

        logger.info(f"Settings updated: {changes}")
        return OperationResult(True, "Settings updated", changes)

    def handle_notification(self, notification_id: str, snooze: bool = False) -> Optional[str]:
        return self.sentry.handle_notification(notification_id, snooze)

    def get_history(self, count: int = 7) -> list:
        return self.history.get_recent(count)

    def clear_history(self) -> OperationResult:
        return self._run("clear_history", self.history.clear_history, message="Security history cleared")

    # =====================
    # Lifecycle
    # =====================

    def start(self) -> None:
        """Start the sentry, its alert dispatcher and (optionally) the watcher."""
        logger.info("Starting Barricade sentry...")
        self.dispatcher.start()
        self.sentry.start()
        if self.watcher:
            self.watcher.start()

    def stop(self) -> None:
        """Stop background work."""
        logger.info("Stopping Barricade...")
        if self.watcher:
            self.watcher.stop()
        self.sentry.stop()
        self.dispatcher.stop()
        logger.info("Barricade stopped.")

    def _run(
        self,
        operation: str,
        func: Callable[..., Any],
        *args,
        message: Optional[str] = None
    ) -> OperationResult:
        """Call ``func`` and turn its outcome into an OperationResult."""
        with operation_scope(operation):
            try:
                data = func(*args)
            except BarricadeError as e:
                return self._failed(operation, e)
            except OSError as e:
                return self._failed(operation, FileAccessError.from_os_error(e, e.filename or ""))

        return OperationResult(True, message or f"{operation} completed", data)

    @staticmethod
    def _failed(operation: str, error: BarricadeError) -> OperationResult:
        logger.warning(
            f"{operation} failed: {error}",
            extra={
                "operation": operation,
                "file_path": error.details.get("file_path"),
                "error_code": error.error_code.name,
            }
        )
        return OperationResult(
            success=False,
            message=error.message,
            data=error.details,
            error_code=error.error_code.name,
        )


# =====================
# Command line
# =====================

def _print_result(result: OperationResult, as_json: bool) -> int:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        mark = "✓" if result.success else "✗"
        print(f"{mark} {result.message}")
    return 0 if result.success else 1


def _print_records(records: List[FileRecord], as_json: bool, flagged_only: bool) -> None:
    if as_json:
        print(json.dumps([r.to_dict() for r in records], indent=2))
        return

    shown = [
        r for r in records
        if not flagged_only or r.threat_level.value != "safe" or r.privacy_level.value != "public"
    ]
    print(f"\n🔍 {len(records)} files scanned, {len(shown)} shown:\n")
    for record in shown:
        label = f" [{record.threat_type}]" if record.threat_type else ""
        print(f"  {record.threat_level.value:<10} {record.privacy_level.value:<9} {record.path}{label}")
        if record.tags:
            print(f"      tags: {', '.join(sorted(record.tags))}")


def _build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="barricade",
        description="Barricade - local endpoint triage"
    )
    parser.add_argument('--config', '-c', type=Path, help='Path to config.yaml')
    parser.add_argument('--json', action='store_true', help='Print machine-readable output')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show log output')

    sub = parser.add_subparsers(dest='command', required=True)

    scan = sub.add_parser('scan', help='Scan monitored sectors (or one directory)')
    scan.add_argument('directory', nargs='?', type=Path)
    scan.add_argument('--all', action='store_true', help='Show safe/public files too')

    sub.add_parser('summary', help='Scan and print the integrity summary')

    for name, help_text in (('quarantine', 'Quarantine a file'), ('vault', 'Move a file into the vault')):
        p = sub.add_parser(name, help=help_text)
        p.add_argument('path', type=Path)
        p.add_argument('--reason', '-r', default=None)

    restore = sub.add_parser('restore', help='Restore a quarantined file')
    restore.add_argument('id')
    unvault = sub.add_parser('unvault', help='Restore a vaulted file')
    unvault.add_argument('id')

    listing = sub.add_parser('list', help='List quarantine or vault contents')
    listing.add_argument('kind', choices=[k.value for k in DispositionKind])

    for name, help_text in (
        ('shred', 'Overwrite and remove a file (irreversible)'),
        ('delete', 'Move a file to the trash'),
        ('deep-scan', 'Byte-level forensic scan of a file'),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument('path', type=Path)

    organize = sub.add_parser('organize', help='Move files into category folders')
    organize.add_argument('paths', nargs='+', type=Path)
    organize.add_argument('--category', default=None)

    history = sub.add_parser('history', help='Show recent integrity scores')
    history.add_argument('count', nargs='?', type=int, default=7)
    history.add_argument('--clear', action='store_true', help='Delete the recorded history')

    sentry = sub.add_parser('sentry', help='Run the proactive sentry')
    sentry.add_argument('--once', action='store_true', help='Run a single tick and exit')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with CLI support."""
    args = _build_parser().parse_args(argv)

    try:
        config = Config.load(args.config)
    except ConfigurationError as e:
        print(f"✗ Invalid configuration: {e.message}")
        return 2
    except yaml.YAMLError as e:
        print(f"✗ Config file is not valid YAML: {e}")
        return 2

    quiet = not (args.verbose or args.command == 'sentry')
    setup_logging(LoggingConfig.from_section(config.logging, level="WARNING" if quiet else None))

    try:
        engine = BarricadeEngine(config=config, config_path=args.config)
    except ConfigurationError as e:
        print(f"✗ {e.message}")
        return 2

    command = args.command

    if command == 'scan':
        records = engine.scan_directory(args.directory) if args.directory else engine.scan_all()
        _print_records(records, args.json, flagged_only=not args.all)
        return 0

    if command == 'summary':
        summary = engine.summarize(engine.scan_all())
        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print("\n📊 Security Summary:\n")
            print(f"  Integrity score: {summary.integrity_score}/100 ({summary.status.value})")
            print(f"  Files: {summary.total_files}")
            print(f"  Malicious: {summary.malicious_count}  Suspicious: {summary.suspicious_count}")
            print(f"  Critical privacy: {summary.critical_privacy_count}  "
                  f"Sensitive privacy: {summary.sensitive_privacy_count}")
        return 0

    if command == 'quarantine':
        return _print_result(engine.quarantine(args.path, args.reason or "Manual quarantine request."), args.json)
    if command == 'vault':
        return _print_result(engine.vault(args.path, args.reason or "Securing sensitive data."), args.json)
    if command == 'restore':
        return _print_result(engine.restore_quarantine(args.id), args.json)
    if command == 'unvault':
        return _print_result(engine.restore_vault(args.id), args.json)

    if command == 'list':
        records = engine.list_quarantine() if args.kind == 'quarantine' else engine.list_vault()
        if args.json:
            print(json.dumps([r.to_dict() for r in records], indent=2))
        elif records:
            print(f"\n🔒 {args.kind.title()} ({len(records)} entries):\n")
            for record in records:
                print(f"  {record.id}")
                print(f"      ← {record.original_path}  ({record.reason})")
        else:
            print(f"{args.kind.title()} is empty.")
        return 0

    if command == 'shred':
        return _print_result(engine.shred(args.path), args.json)
    if command == 'delete':
        return _print_result(engine.delete(args.path), args.json)
    if command == 'deep-scan':
        return _print_result(engine.deep_scan(args.path), args.json)
    if command == 'organize':
        return _print_result(engine.organize(args.paths, args.category), args.json)

    if command == 'history':
        if args.clear:
            return _print_result(engine.clear_history(), args.json)

        entries = engine.get_history(args.count)
        if args.json:
            print(json.dumps([e.to_dict() for e in entries], indent=2))
            return 0
        if not entries:
            print("No history yet.")
        for entry in entries:
            print(f"  [{entry.date[:16]}] score {entry.score}, {entry.threats} threats")
        if len(entries) > 1:
            print(f"  Change since previous scan: {engine.history.score_change():+d}")
        if entries:
            print(f"  Threats found across all recorded scans: {engine.history.total_threats()}")
        return 0

    # sentry
    if args.once:
        engine.sentry.tick()
        engine.dispatcher.drain()
        for note in engine.sentry.outbox:
            print(f"🔔 [{note.type.value}] {note.title}: {note.message}")
        return 0

    def signal_handler(sig, frame):
        engine.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    engine.start()

    # Keep main thread alive
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        engine.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
