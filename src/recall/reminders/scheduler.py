"""Event reminder scheduling.

Every event gets one notification at 19:00 local time on the day
before it. Reminders whose trigger has already passed are skipped.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, time, timedelta, tzinfo

from ..storage.events import EventRepository
from ..storage.models import Event
from .notifications import NotificationCenter, NotificationContent

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 19
DEFAULT_MINUTE = 0
DEFAULT_TITLE = "Recall People"


class ReminderScheduler:
    """Computes reminder triggers and registers them for events."""

    def __init__(
        self,
        center: NotificationCenter,
        hour: int = DEFAULT_HOUR,
        minute: int = DEFAULT_MINUTE,
        title: str = DEFAULT_TITLE,
        tz: tzinfo | None = None,
        events: EventRepository | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize reminder scheduler.

        Args:
            center: Notification collaborator.
            hour: Local hour of the reminder.
            minute: Local minute of the reminder.
            title: Notification title.
            tz: Time zone for triggers; defaults to the system zone.
            events: Repository used to mark events notified.
            clock: Wall clock returning an aware datetime.
        """
        self._center = center
        self._time = time(hour, minute)
        self._title = title
        self._tz = tz
        self._events = events
        self._clock = clock or self._now

    def _now(self) -> datetime:
        return datetime.now(self._tz).astimezone(self._tz)

    def compute_trigger(self, event_date: date) -> datetime:
        """Reminder time for an event: the day before at the configured time."""
        naive = datetime.combine(event_date - timedelta(days=1), self._time)
        if self._tz is not None:
            return naive.replace(tzinfo=self._tz)
        return naive.astimezone()

    def schedule_event_reminder(
        self,
        event_id: str,
        event_date: date,
        title: str,
        contact_name: str,
    ) -> str | None:
        """Register a reminder for an event.

        Returns:
            The notification handle, or None when permission is denied or
            the trigger time has already passed.
        """
        if not self._center.request_permissions():
            logger.warning("Notification permission denied, reminder not scheduled")
            return None

        trigger = self.compute_trigger(event_date)
        if trigger < self._clock():
            logger.debug(f"Reminder for event {event_id} is in the past, skipping")
            return None

        content = NotificationContent(
            title=self._title,
            body=f"Tomorrow: {contact_name} {title}",
            data={"event_id": event_id},
        )
        handle = self._center.schedule(trigger, content)
        logger.info(f"Reminder for event {event_id} scheduled at {trigger.isoformat()}")
        return handle

    def schedule_pending(
        self,
        events: Iterable[Event],
        contact_names: Mapping[str, str],
    ) -> list[str]:
        """Schedule reminders for events not yet notified.

        Events that get a reminder are marked notified.

        Args:
            events: Candidate events.
            contact_names: Contact ID -> display name.

        Returns:
            Handles of the scheduled notifications.
        """
        handles = []
        for event in events:
            if event.notified_at is not None:
                continue
            handle = self.schedule_event_reminder(
                event.id,
                event.event_date,
                event.title,
                contact_names.get(event.contact_id, ""),
            )
            if handle is None:
                continue
            handles.append(handle)
            if self._events is not None:
                self._events.mark_notified(event.id)
        return handles

    def cancel(self, handle: str) -> None:
        """Cancel a reminder. Unknown or fired handles are ignored."""
        self._center.cancel(handle)

    def cancel_all(self) -> int:
        """Cancel every pending reminder."""
        return self._center.cancel_all()

    def add_tap_listener(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Route taps on reminders to callback(event_id).

        Taps on notifications without an event ID are ignored.

        Returns:
            Function that removes the listener.
        """

        def on_tap(content: NotificationContent) -> None:
            event_id = content.data.get("event_id")
            if event_id:
                callback(event_id)

        return self._center.add_tap_listener(on_tap)


__all__ = ["DEFAULT_HOUR", "DEFAULT_TITLE", "ReminderScheduler"]
