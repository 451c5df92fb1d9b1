"""
Desktop Notifications
=====================

Native alert sink for sentry notifications.
Uses libnotify (notify-send) on Linux for native notifications.
"""

import shutil
import subprocess
from typing import Optional
from enum import Enum
from dataclasses import dataclass

from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)


class Urgency(Enum):
    """libnotify urgency levels."""
    LOW = "low"
    NORMAL = "normal"
    CRITICAL = "critical"


@dataclass
class NotificationConfig:
    """Notification configuration."""
    enabled: bool = True
    timeout_ms: int = 8000
    urgency: Urgency = Urgency.NORMAL


class DesktopNotifier:
    """Sends native desktop alerts.

    Implements the alert sink used by the sentry's alert dispatcher:
    ``notify(title, message, notification_id) -> bool``.
    """

    APP_NAME = "Barricade"
    ICON = "security-high"

    def __init__(self, config: Optional[NotificationConfig] = None):
        """Initialize the notifier.

        Args:
            config: Notification configuration.
        """
        self.config = config or NotificationConfig()
        self._available = self._check_availability()

        if self._available:
            logger.debug("Desktop notifications available")
        elif self.config.enabled:
            logger.warning("Desktop notifications not available (notify-send not found)")

    def _check_availability(self) -> bool:
        """Check if notification system is available."""
        return shutil.which("notify-send") is not None

    @property
    def is_available(self) -> bool:
        """Check if notifications are available and enabled."""
        return self._available and self.config.enabled

    def notify(self, title: str, message: str, notification_id: str) -> bool:
        """Fire a titled native alert.

        Args:
            title: Alert title.
            message: Alert body.
            notification_id: Id of the sentry notification, used as the
                libnotify category so click handlers can route it back.

        Returns:
            True if the alert was handed to the OS.
        """
        if not self.is_available:
            return False

        cmd = [
            "notify-send",
            "--app-name", self.APP_NAME,
            "--icon", self.ICON,
            "--urgency", self.config.urgency.value,
            "--expire-time", str(self.config.timeout_ms),
            "--category", f"barricade.{notification_id}",
            title or self.APP_NAME,
            message,
        ]

        try:
            subprocess.run(cmd, capture_output=True, timeout=5, check=True)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to send notification {notification_id}: {e}")
            return False

        logger.debug(f"Notification sent: {title}")
        return True
