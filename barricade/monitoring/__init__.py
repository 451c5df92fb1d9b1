"""Monitoring module for Barricade."""

from .state_store import (
    InMemorySentryStateStore,
    JsonSentryStateStore,
    Notification,
    NotificationType,
    SentryContext,
    SentryStateStore,
    SnoozeMap,
)
from .alert_dispatcher import AlertDispatcher
from .sentry import SentryScheduler
from .watcher import SectorWatcherService

__all__ = [
    "InMemorySentryStateStore",
    "JsonSentryStateStore",
    "Notification",
    "NotificationType",
    "SentryContext",
    "SentryStateStore",
    "SnoozeMap",
    "AlertDispatcher",
    "SentryScheduler",
    "SectorWatcherService",
]
