"""Relationship reminders for Recall.

Schedules "tomorrow" notifications for contact events.
"""

from .notifications import (
    LocalNotificationCenter,
    NotificationCenter,
    NotificationContent,
    NotificationStatus,
    ScheduledNotification,
)
from .scheduler import ReminderScheduler

__all__ = [
    "LocalNotificationCenter",
    "NotificationCenter",
    "NotificationContent",
    "NotificationStatus",
    "ReminderScheduler",
    "ScheduledNotification",
]
