"""Group repository.

Groups are named collections of contacts. Names are unique ignoring
case and stored trimmed. Deleting a group only removes memberships.
"""

import logging

from .database import Database, new_id, now_iso
from .models import Group

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValueError("Group name must not be empty")
    return trimmed


class GroupRepository:
    """Repository for groups and contact memberships."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def list_all(self) -> list[Group]:
        """All groups ordered by name, ignoring case."""
        rows = self._db.query("SELECT * FROM groups ORDER BY name COLLATE NOCASE")
        return [Group.from_row(row) for row in rows]

    def list_by_owner(self, contact_id: str) -> list[Group]:
        """Groups a contact belongs to."""
        return self.list_for_contact(contact_id)

    def get(self, group_id: str) -> Group | None:
        """Get a group by ID."""
        row = self._db.query_one("SELECT * FROM groups WHERE id = ?", (group_id,))
        return Group.from_row(row) if row else None

    def find_by_name(self, name: str) -> Group | None:
        """Find a group by name, ignoring case and surrounding whitespace."""
        row = self._db.query_one(
            "SELECT * FROM groups WHERE name = ? COLLATE NOCASE", (name.strip(),)
        )
        return Group.from_row(row) if row else None

    def create(self, name: str) -> Group:
        """Create a group.

        Raises:
            ValueError: If the name is empty.
            PersistenceError: If a group with that name already exists.
        """
        name = _clean_name(name)
        group_id = new_id()
        now = now_iso()
        with self._db.transaction():
            self._db.execute(
                "INSERT INTO groups (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (group_id, name, now, now),
            )
        logger.debug(f"Created group {name!r}")
        return self._require(group_id)

    def get_or_create(self, name: str) -> Group:
        """Return the group with this name, creating it if needed."""
        with self._db.transaction():
            existing = self.find_by_name(name)
            if existing:
                return existing
            return self.create(name)

    def update(self, group_id: str, name: str) -> Group:
        """Rename a group."""
        name = _clean_name(name)
        with self._db.transaction():
            changed = self._db.execute(
                "UPDATE groups SET name = ?, updated_at = ? WHERE id = ?",
                (name, now_iso(), group_id),
            )
        if not changed:
            raise KeyError(group_id)
        return self._require(group_id)

    def delete(self, group_id: str) -> bool:
        """Delete a group. Member contacts are untouched."""
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM groups WHERE id = ?", (group_id,))
        return deleted > 0

    def _require(self, group_id: str) -> Group:
        group = self.get(group_id)
        if group is None:
            raise KeyError(group_id)
        return group

    def list_for_contact(self, contact_id: str) -> list[Group]:
        """Groups for a contact ordered by name."""
        rows = self._db.query(
            """
            SELECT g.* FROM groups g
            JOIN contact_groups cg ON g.id = cg.group_id
            WHERE cg.contact_id = ?
            ORDER BY g.name COLLATE NOCASE
            """,
            (contact_id,),
        )
        return [Group.from_row(row) for row in rows]

    def list_contact_ids(self, group_id: str) -> list[str]:
        """IDs of the contacts in a group."""
        rows = self._db.query(
            "SELECT contact_id FROM contact_groups WHERE group_id = ?", (group_id,)
        )
        return [row["contact_id"] for row in rows]

    def add_contact(self, contact_id: str, group_id: str) -> None:
        """Add a contact to a group; adding twice is a no-op."""
        self._db.execute(
            """
            INSERT OR IGNORE INTO contact_groups (contact_id, group_id, created_at)
            VALUES (?, ?, ?)
            """,
            (contact_id, group_id, now_iso()),
        )

    def remove_contact(self, contact_id: str, group_id: str) -> None:
        """Remove a contact from a group."""
        self._db.execute(
            "DELETE FROM contact_groups WHERE contact_id = ? AND group_id = ?",
            (contact_id, group_id),
        )

    def set_contact_groups(self, contact_id: str, group_ids: list[str]) -> None:
        """Replace a contact's memberships with exactly these groups."""
        now = now_iso()
        with self._db.transaction():
            self._db.execute("DELETE FROM contact_groups WHERE contact_id = ?", (contact_id,))
            for group_id in dict.fromkeys(group_ids):
                self._db.execute(
                    """
                    INSERT INTO contact_groups (contact_id, group_id, created_at)
                    VALUES (?, ?, ?)
                    """,
                    (contact_id, group_id, now),
                )


__all__ = ["GroupRepository"]
