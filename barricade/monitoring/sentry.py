"""
Proactive Sentry
================

Periodic re-evaluation of the monitored sectors.

Each tick rescans and reclassifies, counts screenshots and unorganized
downloads, and raises at most one notification per type outside that
type's snooze window. New notifications go to the bounded outbox and,
if native alerts are enabled, to the alert dispatcher.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from barricade.classification.file_record import FileRecord
from barricade.config.categories import SectorType
from barricade.config.settings import SentryConfig
from barricade.monitoring.alert_dispatcher import AlertDispatcher
from barricade.monitoring.state_store import (
    InMemorySentryStateStore,
    Notification,
    NotificationType,
    SentryContext,
    SentryStateStore,
)
from barricade.scanning.scanner import DirectoryScanner
from barricade.utils.logging_config import get_logger, operation_scope, Timer

logger = get_logger(__name__)


def count_screenshots(records: List[FileRecord]) -> int:
    return sum(
        1 for r in records
        if r.location == SectorType.SCREENSHOTS or "Screenshot" in r.tags
    )


def count_unorganized_downloads(records: List[FileRecord]) -> int:
    """Files sitting directly in a Downloads folder (not in a category subfolder)."""
    return sum(
        1 for r in records
        if r.location == SectorType.DOWNLOADS and "download" in r.path.parent.name.lower()
    )


def _screenshot_notice(count: int, now: float) -> Notification:
    return Notification(
        id=f"ss-{int(now * 1000)}",
        title="Screenshot Accumulation",
        message=(
            f"I noticed you have {count} screenshots. "
            "Would you like me to identify those you might want to discard?"
        ),
        type=NotificationType.SCREENSHOTS,
        action_prompt=(
            f"Barricade, I have too many screenshots ({count}). "
            "Help me audit and delete the ones I don't need."
        ),
    )


def _downloads_notice(count: int, now: float) -> Notification:
    return Notification(
        id=f"dl-{int(now * 1000)}",
        title="Clutter Detected",
        message=(
            "Your Downloads sector is becoming unorganized. "
            "Shall I perform a Smart Organize protocol?"
        ),
        type=NotificationType.STORAGE,
        action_prompt=(
            "Barricade, my Downloads are a mess. "
            "Please perform a Smart Organize and tidy them up for me."
        ),
    )


@dataclass(frozen=True)
class ThresholdRule:
    """Raise ``build(count, now)`` when ``measure(records) > threshold(settings)``."""
    note_type: NotificationType
    measure: Callable[[List[FileRecord]], int]
    threshold: Callable[[SentryConfig], int]
    build: Callable[[int, float], Notification]


THRESHOLD_RULES = (
    ThresholdRule(
        NotificationType.SCREENSHOTS,
        count_screenshots,
        lambda s: s.screenshot_threshold,
        _screenshot_notice,
    ),
    ThresholdRule(
        NotificationType.STORAGE,
        count_unorganized_downloads,
        lambda s: s.download_threshold,
        _downloads_notice,
    ),
)


class SentryScheduler:
    """Runs sentry ticks on a cancellable background thread.

    ``tick()`` can also be called directly (tests, one-shot CLI runs).
    """

    def __init__(
        self,
        scanner: DirectoryScanner,
        settings: Optional[SentryConfig] = None,
        state_store: Optional[SentryStateStore] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the scheduler.

        Args:
            scanner: Scanner used for each rescan.
            settings: Sentry settings.
            state_store: Where snooze times and the outbox persist.
            dispatcher: Channel to the native alert sink.
            clock: Epoch-seconds time source.
        """
        self.scanner = scanner
        self.state_store = state_store or InMemorySentryStateStore()
        self.context: SentryContext = self.state_store.load(settings or SentryConfig())
        self.dispatcher = dispatcher
        self.clock = clock

        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def settings(self) -> SentryConfig:
        return self.context.settings

    @property
    def outbox(self) -> List[Notification]:
        with self.context.lock:
            return list(self.context.outbox)

    def tick(self, now: Optional[float] = None) -> List[Notification]:
        """Run one evaluation.

        Args:
            now: Evaluation time in epoch seconds (default: clock).

        Returns:
            Notifications raised by this tick.
        """
        context = self.context
        if not context.settings.enabled:
            logger.debug("Sentry disabled, skipping tick")
            return []

        with Timer(logger, "sentry_tick"):
            records = self.scanner.scan_all()

        now = self.clock() if now is None else now
        new_notes: List[Notification] = []

        with context.lock:
            for rule in THRESHOLD_RULES:
                count = rule.measure(records)
                if count <= rule.threshold(context.settings):
                    continue
                if context.snooze.is_snoozed(rule.note_type, now):
                    logger.debug(f"{rule.note_type.value} alert snoozed ({count} files)")
                    continue
                new_notes.append(rule.build(count, now))
                context.snooze.snooze(rule.note_type, now)

            if new_notes:
                for dropped in context.push(new_notes):
                    logger.info(f"Outbox full, dropped notification {dropped.id} ({dropped.type.value})")
                self._save_state()

        if new_notes and context.settings.native_notifications and self.dispatcher:
            for note in new_notes:
                self.dispatcher.submit(note)

        logger.info(f"Sentry tick: {len(records)} files, {len(new_notes)} new notifications")
        return new_notes

    def _save_state(self) -> None:
        """Persist the context; on failure the in-memory state stays authoritative."""
        try:
            self.state_store.save(self.context)
        except OSError as e:
            logger.error(f"Could not save sentry state: {e}")

    def handle_notification(self, notification_id: str, snooze: bool = False) -> Optional[str]:
        """Dismiss or act on a notification.

        Either way the notification leaves the outbox and its type is
        snoozed from now.

        Args:
            notification_id: Notification to handle.
            snooze: True to dismiss, False to execute its action.

        Returns:
            The action prompt to run, or None when dismissed or unknown.
        """
        with self.context.lock:
            note = self.context.remove(notification_id)
            if note is None:
                logger.debug(f"Unknown notification: {notification_id}")
                return None
            self.context.snooze.snooze(note.type, self.clock())
            self._save_state()

        if snooze:
            logger.info(f"Notification dismissed: {note.id}")
            return None

        logger.info(f"Notification action requested: {note.id}")
        return note.action_prompt

    def start(self) -> None:
        """Start ticking every ``interval_minutes`` on a daemon thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("Sentry already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="Sentry")
        self._thread.start()
        logger.info(f"Sentry started (every {self.settings.interval_minutes} min)")

    def stop(self, timeout: float = 10.0) -> None:
        """Stop scheduling; an in-flight tick finishes first."""
        if not self._thread:
            return

        self._stop_event.set()
        self._wake_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Sentry stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def request_tick(self) -> None:
        """Run the next tick now instead of waiting for the interval."""
        self._wake_event.set()

    def _wait_seconds(self) -> float:
        """Seconds until the next tick; an unusable interval falls back to one minute."""
        interval = self.settings.interval_minutes
        try:
            seconds = max(float(interval), 0.01) * 60
        except (TypeError, ValueError):
            seconds = math.inf
        if math.isfinite(seconds):
            return seconds
        logger.error(f"Invalid sentry interval {interval!r}, ticking every minute")
        return 60.0

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self._wake_event.wait(timeout=self._wait_seconds())
            self._wake_event.clear()
            if self._stop_event.is_set():
                break
            with operation_scope("sentry_tick"):
                try:
                    self.tick()
                except Exception as e:
                    logger.error(f"Error in sentry tick: {e}")
