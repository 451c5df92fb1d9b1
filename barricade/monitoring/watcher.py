"""
Sector Watcher
==============

Watches the monitored sectors with watchdog and asks the sentry for an
early tick when something changes, instead of waiting out the interval.
"""

import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


class DebounceTracker:
    """Collapses bursts of events into one trigger per window."""

    def __init__(self, debounce_seconds: float = 5.0):
        """Initialize the debounce tracker.

        Args:
            debounce_seconds: Minimum time between two triggers.
        """
        self.debounce_seconds = debounce_seconds
        self._last = 0.0
        self._lock = threading.Lock()

    def should_trigger(self) -> bool:
        current_time = time.monotonic()
        with self._lock:
            if current_time - self._last >= self.debounce_seconds:
                self._last = current_time
                return True
            return False


class SectorChangeHandler(FileSystemEventHandler):
    """Turns file events in a sector into debounced tick requests."""

    def __init__(self, on_change: Callable[[], None], debounce_seconds: float = 5.0):
        """Initialize the event handler.

        Args:
            on_change: Called (debounced) when a file appears, moves or vanishes.
            debounce_seconds: Minimum time between two calls.
        """
        super().__init__()
        self.on_change = on_change
        self.debouncer = DebounceTracker(debounce_seconds)

    def _handle(self, event) -> None:
        if event.is_directory:
            return
        if Path(event.src_path).name.startswith((".", "$")):
            return
        if not self.debouncer.should_trigger():
            return

        logger.debug(f"Sector change ({event.event_type}): {event.src_path}")
        self.on_change()

    def on_created(self, event) -> None:
        self._handle(event)

    def on_moved(self, event) -> None:
        self._handle(event)

    def on_deleted(self, event) -> None:
        self._handle(event)


class SectorWatcherService:
    """Manages the watchdog Observer over the monitored sectors."""

    def __init__(
        self,
        directories: Iterable[Path],
        on_change: Callable[[], None],
        debounce_seconds: float = 5.0
    ):
        """Initialize the watcher service.

        Args:
            directories: Sector directories to watch (non-recursively).
            on_change: Callback for a debounced change, e.g.
                ``SentryScheduler.request_tick``.
            debounce_seconds: Minimum time between two callbacks.
        """
        self.directories = [Path(d).expanduser() for d in directories]
        self.observer = Observer()
        self.handler = SectorChangeHandler(on_change, debounce_seconds)
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running and self.observer.is_alive()

    def start(self) -> List[Path]:
        """Start watching the sectors that exist.

        Returns:
            Directories actually being watched.
        """
        watched = []
        for directory in self.directories:
            if directory.is_dir():
                self.observer.schedule(self.handler, str(directory), recursive=False)
                watched.append(directory)
                logger.debug(f"Watching sector: {directory}")
            else:
                logger.debug(f"Sector does not exist, not watching: {directory}")

        if not watched:
            logger.warning("No sector directories to watch")
            return watched

        self.observer.start()
        self._running = True
        logger.info(f"Sector watcher started on {len(watched)} directories")
        return watched

    def stop(self) -> None:
        """Stop the watcher service."""
        if self._running:
            self._running = False
            self.observer.stop()
            self.observer.join(timeout=5.0)
            logger.info("Sector watcher stopped")
