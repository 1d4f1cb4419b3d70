"""Local notification center.

A headless stand-in for the OS notification service: scheduled
notifications are persisted to JSON and fired by check_due().
"""

import json
import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from ..storage.models import utc_now

logger = logging.getLogger(__name__)

TapListener = Callable[["NotificationContent"], None]

DEFAULT_RETENTION = timedelta(days=7)


class NotificationStatus(Enum):
    """Status of a scheduled notification."""

    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass
class NotificationContent:
    """What a notification shows and carries."""

    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScheduledNotification:
    """A notification registered with the center.

    Attributes:
        id: Handle returned by schedule().
        trigger: When to deliver.
        content: Title, body and payload.
        status: Current status.
        delivered_at: When it was delivered.
        cancelled_at: When it was cancelled.
        created_at: When it was scheduled.
    """

    id: str
    trigger: datetime
    content: NotificationContent
    status: NotificationStatus = NotificationStatus.PENDING
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def finished_at(self) -> datetime | None:
        """When the notification stopped being pending."""
        return self.delivered_at or self.cancelled_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "trigger": self.trigger.isoformat(),
            "title": self.content.title,
            "body": self.content.body,
            "data": self.content.data,
            "status": self.status.value,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "ScheduledNotification":
        return cls(
            id=item["id"],
            trigger=datetime.fromisoformat(item["trigger"]),
            content=NotificationContent(
                title=item["title"],
                body=item["body"],
                data=dict(item.get("data") or {}),
            ),
            status=NotificationStatus(item["status"]),
            delivered_at=(
                datetime.fromisoformat(item["delivered_at"]) if item.get("delivered_at") else None
            ),
            cancelled_at=(
                datetime.fromisoformat(item["cancelled_at"]) if item.get("cancelled_at") else None
            ),
            created_at=datetime.fromisoformat(item["created_at"]),
        )


class NotificationCenter(Protocol):
    """Interface for the platform notification service."""

    def request_permissions(self) -> bool:
        """Ask for permission to notify; True if granted."""
        ...

    def schedule(self, trigger: datetime, content: NotificationContent) -> str:
        """Register a notification and return its handle."""
        ...

    def cancel(self, handle: str) -> None:
        """Cancel a notification. Unknown handles are ignored."""
        ...

    def cancel_all(self) -> int:
        """Cancel every pending notification."""
        ...

    def add_tap_listener(self, listener: TapListener) -> Callable[[], None]:
        """Subscribe to taps; returns an unsubscribe function."""
        ...


class LocalNotificationCenter:
    """JSON-persisted notification center for headless use."""

    def __init__(
        self,
        persistence_path: Path | str | None = None,
        permission_granted: bool = True,
        on_trigger: Callable[[ScheduledNotification], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        """Initialize the notification center.

        Args:
            persistence_path: JSON file for persistence. If None,
                              notifications are kept in memory only.
            permission_granted: Answer given by request_permissions().
            on_trigger: Called for each notification delivered by check_due().
            clock: Wall clock.
            retention: How long delivered and cancelled notifications
                       are kept before being dropped.
        """
        self._notifications: dict[str, ScheduledNotification] = {}
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._permission_granted = permission_granted
        self._on_trigger = on_trigger
        self._clock = clock
        self._retention = retention
        self._listeners: list[TapListener] = []
        self._lock = threading.RLock()

        if self._persistence_path:
            self._load()

    def request_permissions(self) -> bool:
        return self._permission_granted

    def set_permission(self, granted: bool) -> None:
        """Change the permission answer."""
        self._permission_granted = granted

    def schedule(self, trigger: datetime, content: NotificationContent) -> str:
        """Register a notification."""
        with self._lock:
            notification = ScheduledNotification(
                id=str(uuid.uuid4()),
                trigger=trigger,
                content=content,
                created_at=self._clock(),
            )
            self._notifications[notification.id] = notification
            self._save()
        logger.debug(f"Scheduled notification {notification.id} for {trigger.isoformat()}")
        return notification.id

    def cancel(self, handle: str) -> None:
        """Cancel a pending notification; anything else is a no-op."""
        with self._lock:
            notification = self._notifications.get(handle)
            if notification is None or notification.status is not NotificationStatus.PENDING:
                return
            notification.status = NotificationStatus.CANCELLED
            notification.cancelled_at = self._clock()
            self._save()

    def cancel_all(self) -> int:
        """Cancel every pending notification.

        Returns:
            Number of notifications cancelled.
        """
        with self._lock:
            pending = self._pending_unsafe()
            now = self._clock()
            for notification in pending:
                notification.status = NotificationStatus.CANCELLED
                notification.cancelled_at = now
            if pending:
                self._save()
            return len(pending)

    def get(self, handle: str) -> ScheduledNotification | None:
        with self._lock:
            return self._notifications.get(handle)

    def list_pending(self) -> list[ScheduledNotification]:
        """Pending notifications, soonest first."""
        with self._lock:
            return sorted(self._pending_unsafe(), key=lambda n: n.trigger)

    def check_due(self) -> list[ScheduledNotification]:
        """Deliver notifications whose trigger has passed.

        Returns:
            Newly delivered notifications.
        """
        now = self._clock()
        with self._lock:
            due = [n for n in self._pending_unsafe() if n.trigger <= now]
            for notification in due:
                notification.status = NotificationStatus.DELIVERED
                notification.delivered_at = now
            if due:
                self._save()

        for notification in sorted(due, key=lambda n: n.trigger):
            logger.info(f"Notification: {notification.content.title} - {notification.content.body}")
            if self._on_trigger:
                try:
                    self._on_trigger(notification)
                except Exception as e:
                    logger.warning(f"Notification trigger callback failed: {e}")
        return due

    def add_tap_listener(self, listener: TapListener) -> Callable[[], None]:
        """Subscribe to notification taps."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def tap(self, handle: str) -> bool:
        """Simulate the user tapping a notification.

        Returns:
            True if the notification exists and listeners were called.
        """
        with self._lock:
            notification = self._notifications.get(handle)
            listeners = list(self._listeners)
        if notification is None:
            return False

        for listener in listeners:
            try:
                listener(notification.content)
            except Exception as e:
                logger.warning(f"Tap listener failed: {e}")
        return True

    def _pending_unsafe(self) -> list[ScheduledNotification]:
        return [
            n for n in self._notifications.values() if n.status is NotificationStatus.PENDING
        ]

    def _prune_unsafe(self) -> int:
        """Drop delivered and cancelled notifications past the retention window."""
        cutoff = self._clock() - self._retention
        expired = [
            n.id
            for n in self._notifications.values()
            if n.finished_at is not None and n.finished_at < cutoff
        ]
        for handle in expired:
            del self._notifications[handle]
        return len(expired)

    def _save(self) -> None:
        """Save notifications to JSON file."""
        pruned = self._prune_unsafe()
        if pruned:
            logger.debug(f"Dropped {pruned} finished notifications")
        if not self._persistence_path:
            return

        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = {
                "version": 1,
                "notifications": [n.to_dict() for n in self._notifications.values()],
            }
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2)
            logger.debug(
                f"Saved {len(self._notifications)} notifications to {self._persistence_path}"
            )
        except OSError as e:
            logger.error(f"Failed to save notifications: {e}")

    def _load(self) -> None:
        """Load notifications from JSON file."""
        if not self._persistence_path or not self._persistence_path.exists():
            return

        try:
            with open(self._persistence_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in notifications file: {e}")
            return
        except OSError as e:
            logger.error(f"Failed to load notifications: {e}")
            return

        version = data.get("version", 1)
        if version != 1:
            logger.warning(f"Unknown notifications file version: {version}")

        for item in data.get("notifications", []):
            try:
                notification = ScheduledNotification.from_dict(item)
                self._notifications[notification.id] = notification
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping invalid notification: {e}")
        self._prune_unsafe()

        logger.info(
            f"Loaded {len(self._notifications)} notifications from {self._persistence_path}"
        )


__all__ = [
    "DEFAULT_RETENTION",
    "LocalNotificationCenter",
    "NotificationCenter",
    "NotificationContent",
    "NotificationStatus",
    "ScheduledNotification",
    "TapListener",
]
