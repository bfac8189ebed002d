"""
RESIBOX_PROJECT
Copyright (c) 2026. All rights reserved.
File: resibox/services/notifier.py
Description: Local notification center with channels and fixed-id replacement.
"""

import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

RESI_CHANNEL_ID = "resi_channel"
RESI_CHANNEL_NAME = "Resi Notification"
RESI_NOTIFICATION_ID = 1

IMPORTANCE_LOW = "low"
IMPORTANCE_DEFAULT = "default"
IMPORTANCE_HIGH = "high"
VALID_IMPORTANCE = {IMPORTANCE_LOW, IMPORTANCE_DEFAULT, IMPORTANCE_HIGH}


@dataclass(frozen=True)
class NotificationChannel:
    channel_id: str
    name: str
    importance: str = IMPORTANCE_DEFAULT


@dataclass(frozen=True)
class Notification:
    """A posted notification.

    Attributes:
        notification_id: Posting id; a repost with the same id replaces this one.
        channel_id: Channel the notification was posted on.
        title: Headline.
        message: Body text.
        auto_cancel: Dismiss when the user opens it.
        posted_at: Local ISO timestamp of the post.
    """
    notification_id: int
    channel_id: str
    title: str
    message: str
    auto_cancel: bool = True
    posted_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


NotificationSink = Callable[[Notification], None]


class NotificationCenter:
    """Posts notifications and fans them out to registered sinks.

    Sinks are delivery surfaces (Socket.IO push, a desktop bridge, a test
    recorder). A failing sink is logged and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: Dict[str, NotificationChannel] = {}
        self._active: Dict[int, Notification] = {}
        self._sinks: List[NotificationSink] = []
        self._logger = logging.getLogger(__name__)

    def add_sink(self, sink: NotificationSink) -> Callable[[], None]:
        """Register a delivery surface.

        Returns:
            A callable that removes the sink.
        """
        if not callable(sink):
            raise TypeError("sink must be callable")
        with self._lock:
            self._sinks.append(sink)

        def remove() -> None:
            with self._lock:
                if sink in self._sinks:
                    self._sinks.remove(sink)

        return remove

    def create_channel(self, channel_id: str, name: str,
                       importance: str = IMPORTANCE_DEFAULT) -> NotificationChannel:
        """Create a channel if absent; an existing channel is returned unchanged."""
        if importance not in VALID_IMPORTANCE:
            raise ValueError(f"Invalid importance '{importance}'")
        with self._lock:
            channel = self._channels.get(channel_id)
            if channel is None:
                channel = NotificationChannel(channel_id, name, importance)
                self._channels[channel_id] = channel
                self._logger.debug(f"Notification channel created: {channel_id}")
            return channel

    def notify(self, notification_id: int, channel_id: str, title: str, message: str,
               auto_cancel: bool = True) -> Notification:
        """Post a notification, replacing any active one with the same id.

        Raises:
            KeyError: If the channel does not exist.
        """
        notification = Notification(
            notification_id=notification_id,
            channel_id=channel_id,
            title=title,
            message=message,
            auto_cancel=auto_cancel,
        )
        with self._lock:
            if channel_id not in self._channels:
                raise KeyError(f"Unknown notification channel '{channel_id}'")
            replaced = notification_id in self._active
            self._active[notification_id] = notification
            sinks = list(self._sinks)

        self._logger.info(f"Notification {'replaced' if replaced else 'posted'}: {title} - {message}")
        for sink in sinks:
            try:
                sink(notification)
            except Exception as e:
                self._logger.error(f"Notification sink raised: {e}")
        return notification

    def show_notification(self, title: str, message: str) -> Notification:
        """Ensure the resi channel exists and post under the fixed resi id."""
        self.create_channel(RESI_CHANNEL_ID, RESI_CHANNEL_NAME, IMPORTANCE_DEFAULT)
        return self.notify(RESI_NOTIFICATION_ID, RESI_CHANNEL_ID, title, message)

    def dismiss(self, notification_id: int) -> bool:
        with self._lock:
            return self._active.pop(notification_id, None) is not None

    def get_active(self) -> List[Notification]:
        with self._lock:
            return list(self._active.values())

    def get_channel(self, channel_id: str) -> Optional[NotificationChannel]:
        with self._lock:
            return self._channels.get(channel_id)
