"""
Sentry State
============

Notifications, the snooze map and the scheduler context, plus the
persistence boundary they are loaded from and saved to.
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from barricade.config.settings import SentryConfig
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


class NotificationType(Enum):
    """Alert category; each category has its own snooze window."""
    SCREENSHOTS = "SCREENSHOTS"
    STORAGE = "STORAGE"
    SECURITY = "SECURITY"


@dataclass
class Notification:
    """An alert raised by the sentry.

    Attributes:
        id: Unique id, also used as the native alert id.
        title: Short title.
        message: Body text.
        type: Alert category.
        action_prompt: Request the external layer runs when the user acts.
    """
    id: str
    title: str
    message: str
    type: NotificationType
    action_prompt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "actionPrompt": self.action_prompt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            title=data["title"],
            message=data["message"],
            type=NotificationType(data["type"]),
            action_prompt=data.get("actionPrompt"),
        )


class SnoozeMap:
    """Last-trigger epoch time per notification type.

    A type is suppressed while ``now - last < window``.
    """

    def __init__(self, window_seconds: float, last: Optional[Dict[NotificationType, float]] = None):
        self.window_seconds = window_seconds
        self._last: Dict[NotificationType, float] = dict(last or {})

    def is_snoozed(self, note_type: NotificationType, now: float) -> bool:
        last = self._last.get(note_type)
        return last is not None and now - last < self.window_seconds

    def snooze(self, note_type: NotificationType, now: float) -> None:
        self._last[note_type] = now

    def last_triggered(self, note_type: NotificationType) -> Optional[float]:
        return self._last.get(note_type)

    def to_dict(self) -> Dict[str, float]:
        return {note_type.value: when for note_type, when in self._last.items()}

    @classmethod
    def from_dict(cls, window_seconds: float, data: Dict[str, Any]) -> "SnoozeMap":
        last = {}
        for key, when in (data or {}).items():
            try:
                last[NotificationType(key)] = float(when)
            except (ValueError, TypeError):
                logger.debug(f"Ignoring unknown snooze entry: {key}")
        return cls(window_seconds, last)


@dataclass
class SentryContext:
    """Everything one sentry tick reads and writes.

    Passed explicitly into each tick; nothing is held at module level.
    """
    settings: SentryConfig
    snooze: SnoozeMap
    outbox: List[Notification] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def push(self, notifications: List[Notification]) -> List[Notification]:
        """Append notifications and keep only the most recent ones.

        Returns:
            Notifications dropped from the front of the outbox.
        """
        self.outbox.extend(notifications)
        overflow = len(self.outbox) - max(self.settings.outbox_size, 0)
        if overflow <= 0:
            return []
        dropped = self.outbox[:overflow]
        del self.outbox[:overflow]
        return dropped

    def find(self, notification_id: str) -> Optional[Notification]:
        for note in self.outbox:
            if note.id == notification_id:
                return note
        return None

    def remove(self, notification_id: str) -> Optional[Notification]:
        note = self.find(notification_id)
        if note is not None:
            self.outbox.remove(note)
        return note


class SentryStateStore(ABC):
    """Persistence boundary for snooze timestamps and the outbox."""

    @abstractmethod
    def load(self, settings: SentryConfig) -> SentryContext:
        """Build a context for ``settings`` from persisted state."""

    @abstractmethod
    def save(self, context: SentryContext) -> None:
        """Persist the snooze map and outbox of ``context``."""


class InMemorySentryStateStore(SentryStateStore):
    """Keeps state for the lifetime of the process only."""

    def __init__(self):
        self._snooze: Dict[str, float] = {}
        self._outbox: List[Dict[str, Any]] = []

    def load(self, settings: SentryConfig) -> SentryContext:
        return SentryContext(
            settings=settings,
            snooze=SnoozeMap.from_dict(settings.snooze_minutes * 60, self._snooze),
            outbox=[Notification.from_dict(n) for n in self._outbox],
        )

    def save(self, context: SentryContext) -> None:
        self._snooze = context.snooze.to_dict()
        self._outbox = [n.to_dict() for n in context.outbox]


class JsonSentryStateStore(SentryStateStore):
    """Stores state in a JSON file, replaced atomically on save."""

    def __init__(self, state_file: Path):
        """Initialize the store.

        Args:
            state_file: JSON file to read and write.
        """
        self.state_file = Path(state_file)

    def load(self, settings: SentryConfig) -> SentryContext:
        window = settings.snooze_minutes * 60
        data: Dict[str, Any] = {}

        if self.state_file.exists():
            try:
                with open(self.state_file, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Error loading sentry state, starting fresh: {e}")
                data = {}

        outbox = []
        for entry in data.get("outbox", []):
            try:
                outbox.append(Notification.from_dict(entry))
            except (KeyError, ValueError, TypeError) as e:
                logger.debug(f"Ignoring malformed notification: {e}")

        return SentryContext(
            settings=settings,
            snooze=SnoozeMap.from_dict(window, data.get("snooze", {})),
            outbox=outbox[-settings.outbox_size:] if settings.outbox_size > 0 else [],
        )

    def save(self, context: SentryContext) -> None:
        data = {
            "snooze": context.snooze.to_dict(),
            "outbox": [note.to_dict() for note in context.outbox],
        }

        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.state_file.with_name(self.state_file.name + ".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(temp_path, self.state_file)
