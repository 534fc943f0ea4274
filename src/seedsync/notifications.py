"""User notifications for seedsync.

This module provides:
- NotificationCenter: Records recent notifications for the status API and
  optionally forwards them to the desktop
- send_notification: Native OS notifications (macOS notification center,
  Linux notify-send)
"""

from __future__ import annotations

import logging
import platform
import subprocess
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_NOTIFICATIONS = 50


class NotificationType(str, Enum):
    """Type of notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "created_at": self.created_at,
        }


def _notify_macos(notification: Notification) -> bool:
    """Send notification on macOS using osascript.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    try:
        # Escape quotes in title and message
        title = notification.title.replace('"', '\\"')
        message = notification.message.replace('"', '\\"')

        script = f'display notification "{message}" with title "{title}"'
        subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            check=True,
        )
        return True
    except Exception as e:
        logger.debug(f"macOS notification failed: {e}")
        return False


def _notify_linux(notification: Notification) -> bool:
    """Send notification on Linux using notify-send.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    try:
        urgency = "critical" if notification.type == NotificationType.ERROR else "normal"

        subprocess.run(
            [
                "notify-send",
                "--urgency", urgency,
                "--app-name", "SeedSync",
                notification.title,
                notification.message,
            ],
            capture_output=True,
            check=True,
        )
        return True
    except FileNotFoundError:
        logger.debug("notify-send not found")
        return False
    except Exception as e:
        logger.debug(f"Linux notification failed: {e}")
        return False


def send_notification(notification: Notification) -> bool:
    """Send a desktop notification.

    Returns:
        True if notification was sent, False if failed or unavailable.
    """
    system = platform.system()

    if system == "Darwin":
        return _notify_macos(notification)
    elif system == "Linux":
        return _notify_linux(notification)
    else:
        logger.warning(f"Desktop notifications not supported on {system}")
        return False


class NotificationCenter:
    """Fire-and-forget notification sink.

    Keeps the most recent notifications in memory (newest last) so the
    status API can show them.

    Usage:
        center = NotificationCenter(desktop=True)
        center.post("Download completed episode.mkv")
        center.recent()
    """

    def __init__(
        self,
        max_items: int = DEFAULT_MAX_NOTIFICATIONS,
        desktop: bool = False,
        title: str = "SeedSync",
    ) -> None:
        """Initialize the notification center.

        Args:
            max_items: How many notifications to remember.
            desktop: Also forward notifications to the desktop.
            title: Title used for every notification.
        """
        self._items: deque[Notification] = deque(maxlen=max_items)
        self._desktop = desktop
        self._title = title

    def post(
        self,
        message: str,
        type: NotificationType = NotificationType.INFO,
    ) -> Notification:
        """Post a notification. Never raises for delivery failures."""
        notification = Notification(title=self._title, message=message, type=type)
        self._items.append(notification)
        logger.info("Notification: %s", message)

        if self._desktop:
            send_notification(notification)
        return notification

    def recent(self, limit: int | None = None) -> list[Notification]:
        """Get recent notifications, newest first."""
        items = list(reversed(self._items))
        return items if limit is None else items[:limit]

    def __len__(self) -> int:
        return len(self._items)
