"""Event repository.

Events are dated occurrences ("job interview on the 12th") that feed
the reminder scheduler. Dates are stored as ISO calendar dates.
"""

import logging
import re
from datetime import date, timedelta
from typing import Any

from .database import Database, build_update, new_id, now_iso
from .models import Event

logger = logging.getLogger(__name__)

_EXTRACTED_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_extracted_date(value: str | None, today: date | None = None) -> date | None:
    """Parse a DD/MM/YYYY date produced by the extractor.

    Args:
        value: Date string.
        today: Reference day; defaults to the local current date.

    Returns:
        The date, or None if missing, malformed, impossible, or in the past.
    """
    if not isinstance(value, str):
        return None
    match = _EXTRACTED_DATE.match(value.strip())
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None

    if parsed < (today or date.today()):
        return None
    return parsed


class EventRepository:
    """Repository for contact events."""

    _UPDATABLE = {"title": "title", "event_date": "event_date"}

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        contact_id: str,
        title: str,
        event_date: date,
        source_note_id: str | None = None,
    ) -> Event:
        """Create an event."""
        event_id = new_id()
        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO events (id, contact_id, title, event_date, source_note_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (event_id, contact_id, title, event_date.isoformat(), source_note_id, now_iso()),
            )
        return self._require(event_id)

    def get(self, event_id: str) -> Event | None:
        """Get an event by ID."""
        row = self._db.query_one("SELECT * FROM events WHERE id = ?", (event_id,))
        return Event.from_row(row) if row else None

    def list_by_owner(self, contact_id: str) -> list[Event]:
        """Events for a contact, soonest first."""
        rows = self._db.query(
            "SELECT * FROM events WHERE contact_id = ? ORDER BY event_date ASC",
            (contact_id,),
        )
        return [Event.from_row(row) for row in rows]

    def list_upcoming(self, days_ahead: int = 30, today: date | None = None) -> list[Event]:
        """Events from today through today + days_ahead, soonest first."""
        start = today or date.today()
        end = start + timedelta(days=days_ahead)
        rows = self._db.query(
            """
            SELECT * FROM events
            WHERE event_date >= ? AND event_date <= ?
            ORDER BY event_date ASC
            """,
            (start.isoformat(), end.isoformat()),
        )
        return [Event.from_row(row) for row in rows]

    def list_pending_notifications(self, today: date | None = None) -> list[Event]:
        """Tomorrow's events that have not been notified yet."""
        tomorrow = (today or date.today()) + timedelta(days=1)
        rows = self._db.query(
            """
            SELECT * FROM events
            WHERE event_date = ? AND notified_at IS NULL
            ORDER BY created_at ASC
            """,
            (tomorrow.isoformat(),),
        )
        return [Event.from_row(row) for row in rows]

    def mark_notified(self, event_id: str) -> None:
        """Record that a reminder was scheduled for the event."""
        self._db.execute(
            "UPDATE events SET notified_at = ? WHERE id = ?", (now_iso(), event_id)
        )

    def update(self, event_id: str, **fields: Any) -> Event:
        """Update title or date."""
        if isinstance(fields.get("event_date"), date):
            fields["event_date"] = fields["event_date"].isoformat()
        clauses, values = build_update(fields, self._UPDATABLE)
        if not clauses:
            raise ValueError("Nothing to update")

        with self._db.transaction():
            changed = self._db.execute(
                f"UPDATE events SET {', '.join(clauses)} WHERE id = ?",  # noqa: S608
                (*values, event_id),
            )
        if not changed:
            raise KeyError(event_id)
        return self._require(event_id)

    def delete(self, event_id: str) -> bool:
        """Delete an event."""
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM events WHERE id = ?", (event_id,))
        return deleted > 0

    def _require(self, event_id: str) -> Event:
        event = self.get(event_id)
        if event is None:
            raise KeyError(event_id)
        return event

    parse_extracted_date = staticmethod(parse_extracted_date)


__all__ = ["EventRepository", "parse_extracted_date"]
