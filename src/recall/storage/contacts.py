"""Contact repository.

Contacts own every other record; deleting one cascades to its notes,
facts, hot topics, memories, events and group memberships.
"""

import json
import logging
from typing import Any

from .database import Database, build_update, new_id, now_iso
from .models import Contact, ContactDetail, Fact, HotTopic, Memory, Note

logger = logging.getLogger(__name__)

_UPDATABLE = {
    "first_name": "first_name",
    "last_name": "last_name",
    "nickname": "nickname",
    "tags": "tags",
    "highlights": "highlights",
    "phone": "phone",
    "email": "email",
    "birthday_day": "birthday_day",
    "birthday_month": "birthday_month",
    "birthday_year": "birthday_year",
}

_JSON_FIELDS = {"tags", "highlights"}


def _require_first_name(first_name: str | None) -> str:
    trimmed = (first_name or "").strip()
    if not trimmed:
        raise ValueError("first_name must not be empty")
    return trimmed


class ContactRepository:
    """Repository for contact storage operations."""

    def __init__(self, db: Database) -> None:
        """Initialize repository.

        Args:
            db: Shared database.
        """
        self._db = db

    def create(
        self,
        first_name: str,
        last_name: str | None = None,
        nickname: str | None = None,
        tags: list[str] | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> Contact:
        """Create a contact.

        Raises:
            ValueError: If first_name is empty after trimming.
            PersistenceError: If the insert fails.
        """
        first_name = _require_first_name(first_name)
        now = now_iso()
        contact_id = new_id()

        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO contacts (
                    id, first_name, last_name, nickname, tags, highlights,
                    phone, email, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, '[]', ?, ?, ?, ?)
                """,
                (
                    contact_id,
                    first_name,
                    last_name,
                    nickname,
                    json.dumps(tags or []),
                    phone,
                    email,
                    now,
                    now,
                ),
            )

        logger.debug(f"Created contact {contact_id}")
        return self._require(contact_id)

    def get(self, contact_id: str) -> Contact | None:
        """Get a contact by ID."""
        row = self._db.query_one("SELECT * FROM contacts WHERE id = ?", (contact_id,))
        return Contact.from_row(row) if row else None

    def list_all(self) -> list[Contact]:
        """All contacts, most recently contacted first."""
        rows = self._db.query(
            """
            SELECT * FROM contacts
            ORDER BY last_contact_at IS NULL, last_contact_at DESC, created_at DESC
            """
        )
        return [Contact.from_row(row) for row in rows]

    def list_by_owner(self, owner_id: str) -> list[Contact]:
        """Contacts in a group, ordered by first name."""
        rows = self._db.query(
            """
            SELECT c.* FROM contacts c
            JOIN contact_groups cg ON cg.contact_id = c.id
            WHERE cg.group_id = ?
            ORDER BY c.first_name COLLATE NOCASE
            """,
            (owner_id,),
        )
        return [Contact.from_row(row) for row in rows]

    def find_by_first_name(self, first_name: str) -> list[Contact]:
        """Contacts whose first name matches, ignoring case."""
        rows = self._db.query(
            "SELECT * FROM contacts WHERE first_name = ? COLLATE NOCASE",
            (first_name.strip(),),
        )
        return [Contact.from_row(row) for row in rows]

    def get_detail(self, contact_id: str) -> ContactDetail | None:
        """Load a contact with its facts, notes, hot topics and memories."""
        contact = self.get(contact_id)
        if contact is None:
            return None

        facts = self._db.query(
            "SELECT * FROM facts WHERE contact_id = ? ORDER BY created_at", (contact_id,)
        )
        notes = self._db.query(
            "SELECT * FROM notes WHERE contact_id = ? ORDER BY created_at DESC", (contact_id,)
        )
        topics = self._db.query(
            "SELECT * FROM hot_topics WHERE contact_id = ? ORDER BY created_at DESC",
            (contact_id,),
        )
        memories = self._db.query(
            "SELECT * FROM memories WHERE contact_id = ? ORDER BY created_at DESC",
            (contact_id,),
        )

        return ContactDetail(
            contact=contact,
            facts=[Fact.from_row(r) for r in facts],
            notes=[Note.from_row(r) for r in notes],
            hot_topics=[HotTopic.from_row(r) for r in topics],
            memories=[Memory.from_row(r) for r in memories],
        )

    def update(self, contact_id: str, **fields: Any) -> Contact:
        """Update mutable contact fields.

        Raises:
            ValueError: For unknown fields or an empty first_name.
            KeyError: If the contact does not exist.
        """
        if "first_name" in fields:
            fields["first_name"] = _require_first_name(fields["first_name"])
        for name in _JSON_FIELDS & set(fields):
            fields[name] = json.dumps(fields[name] or [])

        clauses, values = build_update(fields, _UPDATABLE)
        clauses.append("updated_at = ?")
        values.append(now_iso())

        with self._db.transaction():
            changed = self._db.execute(
                f"UPDATE contacts SET {', '.join(clauses)} WHERE id = ?",  # noqa: S608
                (*values, contact_id),
            )
        if not changed:
            raise KeyError(contact_id)
        return self._require(contact_id)

    def touch(self, contact_id: str) -> None:
        """Record that the contact was just interacted with."""
        now = now_iso()
        self._db.execute(
            "UPDATE contacts SET last_contact_at = ?, updated_at = ? WHERE id = ?",
            (now, now, contact_id),
        )

    def set_ai_summary(
        self,
        contact_id: str,
        summary: str,
        ice_breakers: list[str] | None = None,
    ) -> None:
        """Store the summary produced by the enrichment service."""
        self._db.execute(
            """
            UPDATE contacts SET ai_summary = ?, ice_breakers = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                summary,
                json.dumps(ice_breakers) if ice_breakers is not None else None,
                now_iso(),
                contact_id,
            ),
        )
        logger.info(f"AI summary stored for contact {contact_id}")

    def delete(self, contact_id: str) -> bool:
        """Delete a contact and everything attached to it.

        Returns:
            True if a contact was deleted.
        """
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM contacts WHERE id = ?", (contact_id,))
        return deleted > 0

    def count(self) -> int:
        """Number of contacts."""
        row = self._db.query_one("SELECT COUNT(*) FROM contacts")
        return int(row[0]) if row else 0

    def _require(self, contact_id: str) -> Contact:
        contact = self.get(contact_id)
        if contact is None:
            raise KeyError(contact_id)
        return contact


__all__ = ["ContactRepository"]
