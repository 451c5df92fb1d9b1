"""
Alert Dispatcher
================

Bounded channel between the sentry and the native alert sink.
The sentry only enqueues; a worker thread delivers, so a slow or hung
sink never blocks a tick.
"""

import threading
from queue import Queue, Empty, Full
from typing import Optional

from barricade.monitoring.state_store import Notification
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


class AlertDispatcher:
    """Drains a bounded queue of notifications into an alert sink.

    The sink is any object with ``notify(title, message, notification_id)``,
    e.g. ``DesktopNotifier``.
    """

    def __init__(self, sink, max_size: int = 16):
        """Initialize the dispatcher.

        Args:
            sink: Native alert sink.
            max_size: Queue capacity; alerts beyond it are dropped.
        """
        self.sink = sink
        self.queue: Queue = Queue(maxsize=max_size)
        self._running = False
        self._worker_thread: Optional[threading.Thread] = None
        self.delivered = 0
        self.dropped = 0

    def submit(self, notification: Notification) -> bool:
        """Enqueue a notification without blocking.

        Returns:
            False if the queue was full and the alert was dropped.
        """
        try:
            self.queue.put_nowait(notification)
            return True
        except Full:
            self.dropped += 1
            logger.warning(f"Alert queue full, dropped notification {notification.id}")
            return False

    def start(self) -> None:
        """Start the delivery thread."""
        if self._running:
            logger.warning("Alert dispatcher already running")
            return

        self._running = True
        self._worker_thread = threading.Thread(
            target=self._process_loop, daemon=True, name="AlertDispatcher"
        )
        self._worker_thread.start()
        logger.debug("Alert dispatcher started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the delivery thread; undelivered alerts stay queued."""
        if not self._running:
            return

        self._running = False
        if self._worker_thread:
            self._worker_thread.join(timeout=timeout)
        logger.debug("Alert dispatcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def drain(self) -> int:
        """Deliver everything currently queued on the calling thread.

        Returns:
            Number of alerts handed to the sink.
        """
        count = 0
        while True:
            try:
                notification = self.queue.get_nowait()
            except Empty:
                return count
            if self._deliver(notification):
                count += 1
            self.queue.task_done()

    def _process_loop(self) -> None:
        """Main loop that dequeues and delivers alerts."""
        while self._running:
            try:
                notification = self.queue.get(timeout=1.0)
            except Empty:
                continue

            self._deliver(notification)
            self.queue.task_done()

    def _deliver(self, notification: Notification) -> bool:
        try:
            sent = self.sink.notify(notification.title, notification.message, notification.id)
        except Exception as e:
            logger.error(f"Alert sink failed for {notification.id}: {e}")
            return False

        if sent:
            self.delivered += 1
        return bool(sent)
